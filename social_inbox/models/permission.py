"""
Social Inbox Permission Model
One record per (scope, target) holding the per-platform grants
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import Boolean, Column, Enum as SQLEnum, Index, JSON, String, text

from social_inbox.core.rbac import AccessScope, PermissionLevel, Platform
from social_inbox.models.base import SoftDeleteModel


class SocialInboxPermission(SoftDeleteModel):
    """Permission record targeting a user, a team or a role"""
    __tablename__ = "social_inbox_permissions"

    scope = Column(
        SQLEnum(AccessScope, name="access_scope", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    target_id = Column(String(255), nullable=False, index=True)

    # List of {"platform": ..., "level": ..., "denied": ...}
    grants = Column(JSON, default=list, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_by_id = Column(String(255), nullable=True)
    updated_by_id = Column(String(255), nullable=True)

    __table_args__ = (
        # At most one live record per (scope, target)
        Index(
            "uq_social_inbox_permissions_scope_target_live",
            "scope",
            "target_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_social_inbox_permissions_lookup", "scope", "target_id", "is_active"),
    )

    def __repr__(self):
        return f"<SocialInboxPermission(scope='{self.scope}', target_id='{self.target_id}')>"

    def grant_for(self, platform: Platform) -> Optional[dict[str, Any]]:
        """Return the raw grant for ``platform`` or None if the record has none"""
        for grant in self.grants or []:
            if grant.get("platform") == Platform(platform).value:
                return grant
        return None

    def set_grants(self, grants: list[dict[str, Any]]):
        """Replace the grant list with normalized plain values"""
        self.grants = [
            {
                "platform": Platform(g["platform"]).value,
                "level": PermissionLevel(g["level"]).value,
                "denied": bool(g.get("denied", False)),
            }
            for g in grants
        ]
