from datetime import timedelta

from fastapi import HTTPException
import pytest

from social_inbox.core.config import settings
from social_inbox.core.errors import (
    AUTHORIZATION_UNDETERMINED_DETAIL,
    PermissionStoreUnavailable,
    authorization_undetermined,
)
from social_inbox.core.rbac import PermissionLevel, is_admin_role
from social_inbox.core.security import create_access_token, user_context_from_token
from social_inbox.core.token_validator import SharedSecretJWTStrategy, TrustedIssuerTokenValidator


def test_token_becomes_user_context():
    token = create_access_token("agent-42", team_ids=["t1", " t2 ", ""], role="Manager")

    ctx = user_context_from_token(token)

    assert ctx.user_id == "agent-42"
    assert ctx.team_ids == frozenset({"t1", "t2"})
    assert ctx.role == "Manager"


def test_token_without_teams_or_role():
    ctx = user_context_from_token(create_access_token("agent-7"))

    assert ctx.team_ids == frozenset()
    assert ctx.role is None


@pytest.mark.parametrize(
    "claims",
    [
        {"team_ids": 5},
        {"team_ids": "t1"},
        {"team_ids": ["t1", 2]},
        {"role": 7},
        {"role": ["Manager"]},
    ],
)
def test_malformed_identity_claims_are_rejected(claims):
    token = create_access_token("agent-42", additional_claims=claims)

    with pytest.raises(HTTPException) as exc_info:
        user_context_from_token(token)

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Invalid token claims"


def test_untrusted_issuer_is_rejected():
    token = create_access_token("agent-42", issuer="malicious-issuer")

    with pytest.raises(HTTPException) as exc_info:
        user_context_from_token(token)

    assert exc_info.value.status_code == 401
    assert "issuer" in str(exc_info.value.detail).lower()


def test_wrong_token_type_is_rejected():
    token = create_access_token("agent-42", additional_claims={"type": "refresh"})

    with pytest.raises(HTTPException) as exc_info:
        user_context_from_token(token)

    assert exc_info.value.status_code == 401


def test_expired_token_is_rejected():
    token = create_access_token("agent-42", expires_delta=timedelta(minutes=-5))

    with pytest.raises(HTTPException) as exc_info:
        user_context_from_token(token)

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Token expired"


def test_token_signed_with_other_secret_is_rejected():
    validator = TrustedIssuerTokenValidator(
        strategy=SharedSecretJWTStrategy(
            secret_key="another-secret-that-is-also-32-characters-long",
            algorithm=settings.JWT_ALGORITHM,
        ),
        trusted_issuers=settings.AUTH_TRUSTED_ISSUERS,
    )

    with pytest.raises(HTTPException) as exc_info:
        validator.validate(create_access_token("agent-42"), token_type="access")

    assert exc_info.value.status_code == 401


def test_garbage_token_is_rejected():
    with pytest.raises(HTTPException) as exc_info:
        user_context_from_token("not-a-jwt")

    assert exc_info.value.status_code == 401


def test_admin_roles_match_case_insensitively():
    admin_roles = ["General Manager", "Super Admin"]

    assert is_admin_role("super admin", admin_roles)
    assert is_admin_role(" General Manager ", admin_roles)
    assert not is_admin_role("Manager", admin_roles)
    assert not is_admin_role(None, admin_roles)


def test_permission_level_ordering():
    assert PermissionLevel.VIEW_AND_ANSWER.is_more_permissive_than(PermissionLevel.VIEW_ONLY)
    assert not PermissionLevel.VIEW_ONLY.is_more_permissive_than(PermissionLevel.VIEW_ONLY)
    assert PermissionLevel.VIEW_AND_ANSWER.satisfies(PermissionLevel.VIEW_ONLY)
    assert not PermissionLevel.VIEW_ONLY.satisfies(PermissionLevel.VIEW_AND_ANSWER)


def test_store_failure_maps_to_retryable_503():
    exc = PermissionStoreUnavailable("database down", code="permission_store_timeout")

    http_exc = exc.to_http_exception()
    undetermined = authorization_undetermined(exc)

    assert exc.retryable is True
    assert str(exc) == "permission_store_timeout: database down"
    assert http_exc.status_code == 503
    assert undetermined.status_code == 503
    assert undetermined.detail == AUTHORIZATION_UNDETERMINED_DETAIL
