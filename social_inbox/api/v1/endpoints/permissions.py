"""Social inbox permission endpoints."""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_inbox.core.database import get_db
from social_inbox.core.deps import get_current_user_context, get_permission_resolver, require_admin
from social_inbox.core.permission_resolver import PermissionResolver, UserContext
from social_inbox.core.rbac import AccessScope, Platform
from social_inbox.schemas.base import SuccessResponse
from social_inbox.schemas.permission import (
    EffectivePermission,
    EffectivePermissionsResponse,
    PermissionCreateRequest,
    PermissionResponse,
    PermissionUpdateRequest,
)
from social_inbox.services.permission import social_permissions_service

logger = structlog.get_logger()
router = APIRouter()


@router.get("/me", response_model=Optional[PermissionResponse])
async def get_my_permissions(
    ctx: UserContext = Depends(get_current_user_context),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Caller's individual record only; team and role records are not included."""
    return await social_permissions_service.get_my_permissions(db, ctx)


@router.get("/me/effective", response_model=EffectivePermissionsResponse)
async def get_my_effective_permissions(
    ctx: UserContext = Depends(get_current_user_context),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> Any:
    """Resolved permissions across all platforms (Individual > Team > Role)."""
    return await social_permissions_service.get_effective_permissions(resolver, ctx)


@router.get("/me/effective/{platform}", response_model=EffectivePermission)
async def get_my_effective_permission_for_platform(
    platform: Platform,
    ctx: UserContext = Depends(get_current_user_context),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> Any:
    return await social_permissions_service.get_effective_permission_for_platform(resolver, ctx, platform)


@router.get("/effective/{user_id}", response_model=EffectivePermissionsResponse)
async def get_effective_permissions(
    user_id: str,
    team_ids: Optional[list[str]] = Query(default=None),
    role: Optional[str] = Query(default=None),
    admin: UserContext = Depends(require_admin),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> Any:
    """Resolve for any user. Team memberships and role are supplied by the caller."""
    ctx = UserContext.build(user_id=user_id, team_ids=team_ids, role=role)
    return await social_permissions_service.get_effective_permissions(resolver, ctx)


@router.get("/", response_model=list[PermissionResponse])
async def list_permissions(
    scope: Optional[AccessScope] = Query(default=None),
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await social_permissions_service.list_permissions(db, scope)


@router.get("/user/{user_id}", response_model=PermissionResponse)
async def get_user_permissions(
    user_id: str,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await social_permissions_service.get_user_permissions(db, user_id)


@router.get("/team/{team_id}", response_model=list[PermissionResponse])
async def get_team_permissions(
    team_id: str,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await social_permissions_service.list_permissions_for_target(db, team_id)


@router.get("/role/{role_name}", response_model=list[PermissionResponse])
async def get_role_permissions(
    role_name: str,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await social_permissions_service.list_permissions_for_target(db, role_name)


@router.post("/", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    permission_in: PermissionCreateRequest,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await social_permissions_service.create_permission(db, permission_in, admin.user_id)


@router.put("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: UUID,
    permission_in: PermissionUpdateRequest,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await social_permissions_service.update_permission(db, permission_id, permission_in, admin.user_id)


@router.delete("/{permission_id}", response_model=SuccessResponse)
async def delete_permission(
    permission_id: UUID,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await social_permissions_service.delete_permission(db, permission_id, admin.user_id)
    return SuccessResponse(message="Permission deleted successfully")
