"""
Shared fixtures for the social inbox test suite.
"""

import asyncio
from typing import Iterable, Optional

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from social_inbox.core.database import Base
from social_inbox.core.permission_resolver import PermissionRecord, PermissionStore, PlatformGrant
from social_inbox.core.rbac import AccessScope, PermissionLevel, Platform
from social_inbox.models import SocialInboxPermission  # noqa: F401


def grant(platform: str, level: str = "view_only", denied: bool = False) -> PlatformGrant:
    return PlatformGrant(platform=Platform(platform), level=PermissionLevel(level), denied=denied)


def record(scope: str, target_id: str, *grants: PlatformGrant, active: bool = True) -> PermissionRecord:
    return PermissionRecord(scope=AccessScope(scope), target_id=target_id, grants=tuple(grants), active=active)


class InMemoryPermissionStore(PermissionStore):
    """Store double honouring the active-only contract, with call tracking."""

    def __init__(self, records: Iterable[PermissionRecord] = (), delay: float = 0.0):
        self.records = list(records)
        self.delay = delay
        self.calls: list[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _enter(self, call: tuple):
        self.calls.append(call)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

    async def find_active_by_scope(self, scope: AccessScope, target_id: str) -> Optional[PermissionRecord]:
        await self._enter(("one", scope, target_id))
        for rec in self.records:
            if rec.scope == scope and rec.target_id == target_id and rec.active:
                return rec
        return None

    async def find_active_by_scope_and_targets(self, scope: AccessScope, target_ids: Iterable[str]) -> list[PermissionRecord]:
        ids = set(target_ids)
        await self._enter(("many", scope, tuple(sorted(ids))))
        return [rec for rec in self.records if rec.scope == scope and rec.target_id in ids and rec.active]


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Async session factory over a throwaway SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'permissions.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()
