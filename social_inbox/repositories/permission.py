"""
Permission Repository
Database operations for social inbox permission records.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from social_inbox.core.config import settings
from social_inbox.core.errors import PermissionStoreUnavailable
from social_inbox.core.permission_resolver import PermissionRecord, PermissionStore, PlatformGrant
from social_inbox.core.rbac import AccessScope
from social_inbox.models.permission import SocialInboxPermission
from social_inbox.repositories.base import CRUDBase

logger = structlog.get_logger()

T = TypeVar("T")


class PermissionRepository(CRUDBase[SocialInboxPermission]):
    async def get_by_scope_and_target(
        self,
        db: AsyncSession,
        scope: AccessScope,
        target_id: str,
        *,
        active_only: bool = False,
    ) -> Optional[SocialInboxPermission]:
        query = select(SocialInboxPermission).where(
            SocialInboxPermission.scope == AccessScope(scope),
            SocialInboxPermission.target_id == target_id,
            SocialInboxPermission.deleted_at.is_(None),
        )
        if active_only:
            query = query.where(SocialInboxPermission.is_active == True)  # noqa: E712

        result = await db.execute(query)
        return result.scalars().first()

    async def list_active_by_scope_and_targets(
        self,
        db: AsyncSession,
        scope: AccessScope,
        target_ids: list[str],
    ) -> list[SocialInboxPermission]:
        query = (
            select(SocialInboxPermission)
            .where(
                SocialInboxPermission.scope == AccessScope(scope),
                SocialInboxPermission.target_id.in_(target_ids),
                SocialInboxPermission.is_active == True,  # noqa: E712
                SocialInboxPermission.deleted_at.is_(None),
            )
            .order_by(SocialInboxPermission.target_id)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def list_by_scope(
        self, db: AsyncSession, scope: Optional[AccessScope] = None
    ) -> list[SocialInboxPermission]:
        filters = {"scope": AccessScope(scope)} if scope else None
        return await self.get_multi(db, filters=filters)

    async def list_by_target(self, db: AsyncSession, target_id: str) -> list[SocialInboxPermission]:
        return await self.get_multi(db, filters={"target_id": target_id})


permission_repository = PermissionRepository(SocialInboxPermission)


def to_permission_record(row: SocialInboxPermission) -> PermissionRecord:
    return PermissionRecord(
        scope=AccessScope(row.scope),
        target_id=row.target_id,
        grants=tuple(PlatformGrant.from_dict(g) for g in (row.grants or [])),
        active=bool(row.is_active),
    )


class SqlPermissionStore(PermissionStore):
    """
    PermissionStore over SQLAlchemy.

    Every fetch runs in its own session so the resolver can issue fetches
    concurrently. Database errors and timeouts surface as
    PermissionStoreUnavailable; cancellation propagates untouched.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        *,
        timeout: Optional[float] = None,
        repository: PermissionRepository = permission_repository,
    ):
        self._session_factory = session_factory
        self._timeout = settings.PERMISSION_STORE_TIMEOUT_SECONDS if timeout is None else timeout
        self._repository = repository

    async def find_active_by_scope(self, scope: AccessScope, target_id: str) -> Optional[PermissionRecord]:
        async def fetch(db: AsyncSession) -> Optional[PermissionRecord]:
            row = await self._repository.get_by_scope_and_target(db, scope, target_id, active_only=True)
            return to_permission_record(row) if row is not None else None

        return await self._run("find_active_by_scope", fetch, scope=scope, target_id=target_id)

    async def find_active_by_scope_and_targets(
        self, scope: AccessScope, target_ids: Iterable[str]
    ) -> list[PermissionRecord]:
        ids = sorted({t for t in target_ids if t})
        if not ids:
            return []

        async def fetch(db: AsyncSession) -> list[PermissionRecord]:
            rows = await self._repository.list_active_by_scope_and_targets(db, scope, ids)
            return [to_permission_record(row) for row in rows]

        return await self._run("find_active_by_scope_and_targets", fetch, scope=scope, target_ids=ids)

    async def _run(
        self,
        operation: str,
        fetch: Callable[[AsyncSession], Awaitable[T]],
        **context: Any,
    ) -> T:
        async def in_session() -> T:
            async with self._session_factory() as db:
                return await fetch(db)

        scope = context.get("scope")
        log_context = {**context, "scope": AccessScope(scope).value} if scope else context
        try:
            return await asyncio.wait_for(in_session(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Permission store fetch timed out", operation=operation, timeout=self._timeout, **log_context)
            raise PermissionStoreUnavailable(
                f"Permission store did not answer within {self._timeout}s",
                code="permission_store_timeout",
            ) from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Permission store fetch failed", operation=operation, error=str(exc), **log_context)
            raise PermissionStoreUnavailable("Permission store is unavailable") from exc
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Corrupt permission record", operation=operation, error=str(exc), **log_context)
            raise PermissionStoreUnavailable(
                "Permission record could not be decoded",
                code="permission_record_corrupt",
            ) from exc
