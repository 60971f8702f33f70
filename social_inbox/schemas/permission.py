"""
Social inbox permission schemas for admin CRUD and effective permission views.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from social_inbox.core.rbac import AccessScope, PermissionLevel, PermissionSource, Platform
from social_inbox.schemas.base import BaseResponseSchema, BaseSchema


class PlatformGrantSchema(BaseSchema):
    platform: Platform
    level: PermissionLevel = Field(PermissionLevel.VIEW_ONLY)
    denied: bool = Field(False, description="Explicit denial; only blocking at user scope")


def _reject_duplicate_platforms(grants: Optional[list[PlatformGrantSchema]]) -> Optional[list[PlatformGrantSchema]]:
    if grants is None:
        return grants
    seen: set[str] = set()
    duplicates: set[str] = set()
    for grant in grants:
        platform = Platform(grant.platform).value
        if platform in seen:
            duplicates.add(platform)
        seen.add(platform)
    if duplicates:
        raise ValueError(f"Duplicate platform grants: {sorted(duplicates)}")
    return grants


class PermissionCreateRequest(BaseSchema):
    scope: AccessScope
    target_id: str = Field(..., min_length=1, max_length=255, description="User ID, team ID or role name")
    grants: list[PlatformGrantSchema] = Field(default_factory=list)

    @field_validator("grants")
    @classmethod
    def validate_grants(cls, values: list[PlatformGrantSchema]) -> list[PlatformGrantSchema]:
        return _reject_duplicate_platforms(values)


class PermissionUpdateRequest(BaseSchema):
    grants: Optional[list[PlatformGrantSchema]] = None
    is_active: Optional[bool] = None

    @field_validator("grants")
    @classmethod
    def validate_grants(cls, values: Optional[list[PlatformGrantSchema]]) -> Optional[list[PlatformGrantSchema]]:
        return _reject_duplicate_platforms(values)


class PermissionResponse(BaseResponseSchema):
    scope: AccessScope
    target_id: str
    grants: list[PlatformGrantSchema] = Field(default_factory=list)
    is_active: bool
    created_by_id: Optional[str] = None
    updated_by_id: Optional[str] = None
    deleted_at: Optional[datetime] = None


class EffectivePermission(BaseSchema):
    platform: Platform
    level: PermissionLevel
    denied: bool
    source: PermissionSource


class EffectivePermissionsResponse(BaseSchema):
    user_id: str
    permissions: list[EffectivePermission] = Field(default_factory=list)
