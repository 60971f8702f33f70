"""
Effective permission resolution for the social inbox.

A user's access to each platform is merged from three independent records:
the individual record for the user, the records of every team the user is in,
and the record for the user's role. Priority is Individual > Team > Role.
Within the team tier the most permissive non-denied grant wins. Only an
individual denial blocks access; team and role denials just contribute nothing.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Iterable, Optional

import structlog

from social_inbox.core.rbac import (
    PLATFORM_ORDER,
    AccessScope,
    PermissionLevel,
    PermissionSource,
    Platform,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class PlatformGrant:
    platform: Platform
    level: PermissionLevel
    denied: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlatformGrant":
        return cls(
            platform=Platform(data["platform"]),
            level=PermissionLevel(data["level"]),
            denied=bool(data.get("denied", False)),
        )


@dataclass(frozen=True)
class PermissionRecord:
    """Read-only snapshot of a stored permission record."""

    scope: AccessScope
    target_id: str
    grants: tuple[PlatformGrant, ...] = ()
    active: bool = True

    def grant_for(self, platform: Platform) -> Optional[PlatformGrant]:
        # Duplicate platforms are a data-integrity violation; the first one is used
        for grant in self.grants:
            if grant.platform == platform:
                return grant
        return None


@dataclass(frozen=True)
class UserContext:
    user_id: str = ""
    team_ids: frozenset[str] = field(default_factory=frozenset)
    role: Optional[str] = None

    @classmethod
    def build(cls, user_id: str | None, team_ids: Iterable[str] | None = None, role: str | None = None) -> "UserContext":
        teams = frozenset(str(t).strip() for t in (team_ids or []) if t and str(t).strip())
        return cls(
            user_id=(user_id or "").strip(),
            team_ids=teams,
            role=(role or "").strip() or None,
        )


@dataclass(frozen=True)
class ResolvedPermission:
    platform: Platform
    level: PermissionLevel
    denied: bool
    source: PermissionSource

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform.value,
            "level": self.level.value,
            "denied": self.denied,
            "source": self.source.value,
        }


class PermissionStore(ABC):
    """
    Read access to permission records.

    Implementations only return records that are active and not soft-deleted,
    and raise PermissionStoreUnavailable when a fetch cannot be completed.
    """

    @abstractmethod
    async def find_active_by_scope(self, scope: AccessScope, target_id: str) -> Optional[PermissionRecord]:
        raise NotImplementedError

    @abstractmethod
    async def find_active_by_scope_and_targets(
        self, scope: AccessScope, target_ids: Iterable[str]
    ) -> list[PermissionRecord]:
        raise NotImplementedError


@dataclass(frozen=True)
class _TierSnapshot:
    individual: Optional[PermissionRecord]
    teams: tuple[PermissionRecord, ...]
    role: Optional[PermissionRecord]


class PermissionResolver(ABC):
    @abstractmethod
    async def resolve_all(self, ctx: UserContext) -> list[ResolvedPermission]:
        raise NotImplementedError

    @abstractmethod
    async def resolve_one(self, ctx: UserContext, platform: Platform) -> Optional[ResolvedPermission]:
        raise NotImplementedError


class TieredPermissionResolver(PermissionResolver):
    """Resolver backed by a PermissionStore. Holds no mutable state."""

    def __init__(self, store: PermissionStore):
        self._store = store

    async def resolve_all(self, ctx: UserContext) -> list[ResolvedPermission]:
        logger.debug(
            "Resolving permissions",
            user_id=ctx.user_id,
            team_ids=sorted(ctx.team_ids),
            role=ctx.role,
        )
        snapshot = await self._fetch_tiers(ctx)

        resolved: list[ResolvedPermission] = []
        for platform in PLATFORM_ORDER:
            permission = self._resolve_platform(platform, snapshot)
            if permission is not None:
                resolved.append(permission)
        return resolved

    async def resolve_one(self, ctx: UserContext, platform: Platform) -> Optional[ResolvedPermission]:
        platform = Platform(platform)
        snapshot = await self._fetch_tiers(ctx)
        return self._resolve_platform(platform, snapshot)

    async def _fetch_tiers(self, ctx: UserContext) -> _TierSnapshot:
        individual, teams, role = await _gather_or_cancel(
            self._fetch_individual(ctx.user_id),
            self._fetch_teams(ctx.team_ids),
            self._fetch_role(ctx.role),
        )
        return _TierSnapshot(individual=individual, teams=tuple(teams), role=role)

    async def _fetch_individual(self, user_id: str) -> Optional[PermissionRecord]:
        if not user_id:
            return None
        return await self._store.find_active_by_scope(AccessScope.USER, user_id)

    async def _fetch_teams(self, team_ids: frozenset[str]) -> list[PermissionRecord]:
        if not team_ids:
            return []
        # Sorted so the store sees identical queries for identical contexts
        return await self._store.find_active_by_scope_and_targets(AccessScope.TEAM, sorted(team_ids))

    async def _fetch_role(self, role: Optional[str]) -> Optional[PermissionRecord]:
        if not role:
            return None
        return await self._store.find_active_by_scope(AccessScope.ROLE, role)

    def _resolve_platform(self, platform: Platform, snapshot: _TierSnapshot) -> Optional[ResolvedPermission]:
        # Individual: any grant wins, including an explicit denial
        if snapshot.individual is not None:
            grant = snapshot.individual.grant_for(platform)
            if grant is not None:
                if grant.denied:
                    logger.debug("Individual denial", platform=platform.value)
                else:
                    logger.debug("Using individual permission", platform=platform.value)
                return ResolvedPermission(
                    platform=platform,
                    level=grant.level,
                    denied=grant.denied,
                    source=PermissionSource.INDIVIDUAL,
                )

        # Team: most permissive non-denied grant
        best: Optional[PlatformGrant] = None
        for record in snapshot.teams:
            grant = record.grant_for(platform)
            if grant is None or grant.denied:
                continue
            if best is None or grant.level.is_more_permissive_than(best.level):
                best = grant
        if best is not None:
            logger.debug("Using team permission", platform=platform.value, level=best.level.value)
            return ResolvedPermission(
                platform=platform,
                level=best.level,
                denied=False,
                source=PermissionSource.TEAM,
            )

        # Role: baseline
        if snapshot.role is not None:
            grant = snapshot.role.grant_for(platform)
            if grant is not None and not grant.denied:
                logger.debug("Using role permission", platform=platform.value)
                return ResolvedPermission(
                    platform=platform,
                    level=grant.level,
                    denied=False,
                    source=PermissionSource.ROLE,
                )

        logger.debug("No permission found", platform=platform.value)
        return None


async def _gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """
    Run awaitables concurrently. If one fails the others are cancelled and
    the failing exception is re-raised unchanged, so callers never see partial results.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
