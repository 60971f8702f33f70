"""
Tests for SocialPermissionsService
Unit tests for permission record management with a mocked repository
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from social_inbox.core.permission_resolver import ResolvedPermission, UserContext
from social_inbox.core.rbac import AccessScope, PermissionLevel, PermissionSource, Platform
from social_inbox.models.permission import SocialInboxPermission
from social_inbox.schemas.permission import PermissionCreateRequest, PermissionUpdateRequest
from social_inbox.services.permission import SocialPermissionsService


# ==================== Fixtures ====================

def _stamp(obj):
    now = datetime.now(timezone.utc)
    if obj.id is None:
        obj.id = uuid4()
    obj.created_at = obj.created_at or now
    obj.updated_at = now


@pytest.fixture
def service():
    """SocialPermissionsService with a mocked repository"""
    svc = SocialPermissionsService()
    svc.repository = AsyncMock()
    return svc


@pytest.fixture
def mock_db():
    """Mock async session whose refresh fills server-side defaults"""
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock(side_effect=_stamp)
    return db


@pytest.fixture
def team_permission():
    row = SocialInboxPermission(scope=AccessScope.TEAM, target_id="team-sales-001", is_active=True)
    row.set_grants([{"platform": "facebook", "level": "view_and_answer", "denied": False}])
    _stamp(row)
    return row


# ==================== Create ====================


class TestCreatePermission:
    @pytest.mark.asyncio
    async def test_create_permission_success(self, service, mock_db):
        service.repository.get_by_scope_and_target.return_value = None
        data = PermissionCreateRequest(
            scope="user",
            target_id="user123",
            grants=[{"platform": "facebook", "level": "view_only", "denied": True}],
        )

        result = await service.create_permission(mock_db, data, created_by_id="admin-1")

        assert result.scope == "user"
        assert result.target_id == "user123"
        assert result.is_active is True
        assert result.created_by_id == "admin-1"
        assert result.grants[0].platform == "facebook"
        assert result.grants[0].denied is True
        mock_db.add.assert_called_once()
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_permission_conflict(self, service, mock_db, team_permission):
        service.repository.get_by_scope_and_target.return_value = team_permission
        data = PermissionCreateRequest(scope="team", target_id="team-sales-001", grants=[])

        with pytest.raises(HTTPException) as exc_info:
            await service.create_permission(mock_db, data, created_by_id="admin-1")

        assert exc_info.value.status_code == 409
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_permission_race_maps_to_conflict(self, service, mock_db):
        service.repository.get_by_scope_and_target.return_value = None
        mock_db.commit.side_effect = IntegrityError("INSERT", {}, Exception("unique"))
        data = PermissionCreateRequest(scope="role", target_id="General Manager", grants=[])

        with pytest.raises(HTTPException) as exc_info:
            await service.create_permission(mock_db, data, created_by_id="admin-1")

        assert exc_info.value.status_code == 409
        mock_db.rollback.assert_awaited_once()

    def test_duplicate_platforms_rejected(self):
        with pytest.raises(ValueError):
            PermissionCreateRequest(
                scope="team",
                target_id="t1",
                grants=[
                    {"platform": "gmail", "level": "view_only"},
                    {"platform": "gmail", "level": "view_and_answer"},
                ],
            )


# ==================== Update / Delete ====================


class TestUpdatePermission:
    @pytest.mark.asyncio
    async def test_update_replaces_grants_and_active_flag(self, service, mock_db, team_permission):
        service.repository.get.return_value = team_permission
        data = PermissionUpdateRequest(
            grants=[{"platform": "instagram", "level": "view_only"}],
            is_active=False,
        )

        result = await service.update_permission(mock_db, team_permission.id, data, updated_by_id="admin-2")

        assert [g.platform for g in result.grants] == ["instagram"]
        assert result.is_active is False
        assert result.updated_by_id == "admin-2"

    @pytest.mark.asyncio
    async def test_update_keeps_grants_when_omitted(self, service, mock_db, team_permission):
        service.repository.get.return_value = team_permission

        result = await service.update_permission(
            mock_db, team_permission.id, PermissionUpdateRequest(is_active=False), updated_by_id="admin-2"
        )

        assert [g.platform for g in result.grants] == ["facebook"]

    @pytest.mark.asyncio
    async def test_update_missing_permission(self, service, mock_db):
        service.repository.get.return_value = None

        with pytest.raises(HTTPException) as exc_info:
            await service.update_permission(mock_db, uuid4(), PermissionUpdateRequest(), updated_by_id="admin")

        assert exc_info.value.status_code == 404


class TestDeletePermission:
    @pytest.mark.asyncio
    async def test_delete_is_soft(self, service, mock_db, team_permission):
        service.repository.get.return_value = team_permission

        await service.delete_permission(mock_db, team_permission.id, deleted_by_id="admin-3")

        service.repository.soft_delete.assert_awaited_once_with(mock_db, db_obj=team_permission)
        assert team_permission.updated_by_id == "admin-3"

    @pytest.mark.asyncio
    async def test_delete_missing_permission(self, service, mock_db):
        service.repository.get.return_value = None

        with pytest.raises(HTTPException) as exc_info:
            await service.delete_permission(mock_db, uuid4(), deleted_by_id="admin")

        assert exc_info.value.status_code == 404


# ==================== Reads ====================


class TestReadPermissions:
    @pytest.mark.asyncio
    async def test_my_permissions_uses_active_individual_record(self, service, mock_db):
        service.repository.get_by_scope_and_target.return_value = None
        ctx = UserContext.build(user_id="u1", team_ids=["t1"], role="Agent")

        assert await service.get_my_permissions(mock_db, ctx) is None
        service.repository.get_by_scope_and_target.assert_awaited_once_with(
            mock_db, AccessScope.USER, "u1", active_only=True
        )

    @pytest.mark.asyncio
    async def test_get_user_permissions_not_found(self, service, mock_db):
        service.repository.get_by_scope_and_target.return_value = None

        with pytest.raises(HTTPException) as exc_info:
            await service.get_user_permissions(mock_db, "nobody")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_effective_permissions_wraps_resolver_output(self, service):
        resolver = AsyncMock()
        resolver.resolve_all.return_value = [
            ResolvedPermission(Platform.FACEBOOK, PermissionLevel.VIEW_ONLY, True, PermissionSource.INDIVIDUAL),
        ]
        ctx = UserContext.build(user_id="u1")

        result = await service.get_effective_permissions(resolver, ctx)

        assert result.user_id == "u1"
        assert result.permissions[0].model_dump() == {
            "platform": "facebook",
            "level": "view_only",
            "denied": True,
            "source": "individual",
        }

    @pytest.mark.asyncio
    async def test_effective_permission_for_platform_without_access(self, service):
        resolver = AsyncMock()
        resolver.resolve_one.return_value = None

        with pytest.raises(HTTPException) as exc_info:
            await service.get_effective_permission_for_platform(resolver, UserContext.build("u1"), Platform.GMAIL)

        assert exc_info.value.status_code == 404
