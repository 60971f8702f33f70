"""
Social Permissions Service
Administrative management of permission records and effective permission views.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_inbox.core.permission_resolver import PermissionResolver, UserContext
from social_inbox.core.rbac import AccessScope, Platform
from social_inbox.models.permission import SocialInboxPermission
from social_inbox.repositories.permission import permission_repository
from social_inbox.schemas.permission import (
    EffectivePermission,
    EffectivePermissionsResponse,
    PermissionCreateRequest,
    PermissionResponse,
    PermissionUpdateRequest,
)

logger = structlog.get_logger()


class SocialPermissionsService:
    def __init__(self):
        self.repository = permission_repository

    def _to_response(self, permission: SocialInboxPermission) -> PermissionResponse:
        return PermissionResponse.model_validate(permission)

    def _conflict(self, scope: AccessScope, target_id: str) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Permissions already exist for {AccessScope(scope).value}: {target_id}",
        )

    async def _get_or_404(self, db: AsyncSession, permission_id: UUID) -> SocialInboxPermission:
        permission = await self.repository.get(db, id=permission_id)
        if not permission:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Permission not found: {permission_id}",
            )
        return permission

    async def get_my_permissions(self, db: AsyncSession, ctx: UserContext) -> Optional[PermissionResponse]:
        """Raw individual record of the caller; team and role records are not included."""
        if not ctx.user_id:
            return None
        permission = await self.repository.get_by_scope_and_target(
            db, AccessScope.USER, ctx.user_id, active_only=True
        )
        return self._to_response(permission) if permission else None

    async def get_effective_permissions(
        self, resolver: PermissionResolver, ctx: UserContext
    ) -> EffectivePermissionsResponse:
        resolved = await resolver.resolve_all(ctx)
        return EffectivePermissionsResponse(
            user_id=ctx.user_id,
            permissions=[EffectivePermission.model_validate(r) for r in resolved],
        )

    async def get_effective_permission_for_platform(
        self, resolver: PermissionResolver, ctx: UserContext, platform: Platform
    ) -> EffectivePermission:
        resolved = await resolver.resolve_one(ctx, platform)
        if resolved is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No access to {Platform(platform).value}",
            )
        return EffectivePermission.model_validate(resolved)

    async def get_user_permissions(self, db: AsyncSession, user_id: str) -> PermissionResponse:
        permission = await self.repository.get_by_scope_and_target(db, AccessScope.USER, user_id)
        if not permission:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Permissions not found for user: {user_id}",
            )
        return self._to_response(permission)

    async def list_permissions(
        self, db: AsyncSession, scope: Optional[AccessScope] = None
    ) -> list[PermissionResponse]:
        permissions = await self.repository.list_by_scope(db, scope)
        return [self._to_response(p) for p in permissions]

    async def list_permissions_for_target(self, db: AsyncSession, target_id: str) -> list[PermissionResponse]:
        permissions = await self.repository.list_by_target(db, target_id)
        return [self._to_response(p) for p in permissions]

    async def create_permission(
        self, db: AsyncSession, data: PermissionCreateRequest, created_by_id: str
    ) -> PermissionResponse:
        scope = AccessScope(data.scope)
        existing = await self.repository.get_by_scope_and_target(db, scope, data.target_id)
        if existing:
            raise self._conflict(scope, data.target_id)

        permission = SocialInboxPermission(
            scope=scope,
            target_id=data.target_id,
            is_active=True,
            created_by_id=created_by_id or None,
        )
        permission.set_grants([g.model_dump() for g in data.grants])

        db.add(permission)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race against a concurrent create for the same target
            await db.rollback()
            raise self._conflict(scope, data.target_id)
        await db.refresh(permission)

        logger.info(
            "Permission created",
            permission_id=str(permission.id),
            scope=scope.value,
            target_id=permission.target_id,
            created_by_id=created_by_id,
        )
        return self._to_response(permission)

    async def update_permission(
        self,
        db: AsyncSession,
        permission_id: UUID,
        data: PermissionUpdateRequest,
        updated_by_id: str,
    ) -> PermissionResponse:
        permission = await self._get_or_404(db, permission_id)

        if data.grants is not None:
            permission.set_grants([g.model_dump() for g in data.grants])
        if data.is_active is not None:
            permission.is_active = data.is_active
        permission.updated_by_id = updated_by_id or None

        db.add(permission)
        await db.commit()
        await db.refresh(permission)

        logger.info(
            "Permission updated",
            permission_id=str(permission.id),
            is_active=permission.is_active,
            updated_by_id=updated_by_id,
        )
        return self._to_response(permission)

    async def delete_permission(self, db: AsyncSession, permission_id: UUID, deleted_by_id: str) -> None:
        permission = await self._get_or_404(db, permission_id)
        permission.updated_by_id = deleted_by_id or None
        await self.repository.soft_delete(db, db_obj=permission)

        logger.info(
            "Permission deleted",
            permission_id=str(permission_id),
            scope=AccessScope(permission.scope).value,
            target_id=permission.target_id,
            deleted_by_id=deleted_by_id,
        )


social_permissions_service = SocialPermissionsService()
