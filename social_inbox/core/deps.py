"""
FastAPI Dependencies
Caller identity, admin gating, resolver wiring and platform access checks
"""

from typing import Optional
from fastapi import Depends, HTTPException, status, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import structlog

from social_inbox.core.config import settings
from social_inbox.core.database import AsyncSessionLocal
from social_inbox.core.errors import PermissionStoreUnavailable, authorization_undetermined
from social_inbox.core.permission_resolver import (
    PermissionResolver,
    ResolvedPermission,
    TieredPermissionResolver,
    UserContext,
)
from social_inbox.core.rbac import PermissionLevel, Platform, is_admin_role
from social_inbox.core.security import user_context_from_token
from social_inbox.repositories.permission import SqlPermissionStore

logger = structlog.get_logger()

security = HTTPBearer(auto_error=False)

permission_resolver: PermissionResolver = TieredPermissionResolver(SqlPermissionStore(AsyncSessionLocal))


def get_permission_resolver() -> PermissionResolver:
    return permission_resolver


async def get_current_user_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> UserContext:
    """
    Build the caller's UserContext from the bearer token

    Raises:
        HTTPException: 401 if no valid token is supplied
    """
    if not credentials:
        logger.warning("Missing authentication credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    ctx = user_context_from_token(credentials.credentials)
    logger.debug("User authenticated", user_id=ctx.user_id, role=ctx.role, team_count=len(ctx.team_ids))
    return ctx


async def require_admin(
    ctx: UserContext = Depends(get_current_user_context)
) -> UserContext:
    """Only roles listed in ADMIN_ROLES may manage permission records"""
    if not is_admin_role(ctx.role, settings.ADMIN_ROLES):
        logger.warning("Non-admin attempted admin access", user_id=ctx.user_id, role=ctx.role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only General Manager or Super Admin can perform this action",
        )
    return ctx


def require_platform_access(platform: Platform, level: PermissionLevel = PermissionLevel.VIEW_ONLY):
    """
    Dependency factory guarding inbox endpoints for one platform

    The caller passes when the resolved permission exists, is not denied and
    is at least ``level``. A store failure is reported as 503, never as 403.
    """
    platform = Platform(platform)
    level = PermissionLevel(level)

    async def platform_access_checker(
        ctx: UserContext = Depends(get_current_user_context),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> ResolvedPermission:
        try:
            resolved = await resolver.resolve_one(ctx, platform)
        except PermissionStoreUnavailable as exc:
            logger.error(
                "Authorization could not be determined",
                user_id=ctx.user_id,
                platform=platform.value,
                error=str(exc),
            )
            raise authorization_undetermined(exc)

        if resolved is None or resolved.denied or not resolved.level.satisfies(level):
            logger.warning(
                "Platform access denied",
                user_id=ctx.user_id,
                platform=platform.value,
                required=level.value,
                resolved=resolved.to_dict() if resolved else None,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied: {level.value} on {platform.value} required",
            )

        return resolved

    return platform_access_checker
