"""
Identity acceptance for the social inbox API.

Turns a CRM-issued bearer token into an explicit UserContext.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from joserfc import jwt as jose_jwt
from joserfc.jwk import OctKey
import structlog

from social_inbox.core.config import settings
from social_inbox.core.permission_resolver import UserContext
from social_inbox.core.token_validator import (
    SharedSecretJWTStrategy,
    TrustedIssuerTokenValidator,
    unauthorized,
)

logger = structlog.get_logger()

ALGORITHM = settings.JWT_ALGORITHM
SECRET_KEY = settings.JWT_SECRET_KEY

_jwt_key = OctKey.import_key(SECRET_KEY)

_token_validator = TrustedIssuerTokenValidator(
    strategy=SharedSecretJWTStrategy(secret_key=SECRET_KEY, algorithm=ALGORITHM),
    trusted_issuers=settings.AUTH_TRUSTED_ISSUERS,
)


def create_access_token(
    subject: str,
    *,
    team_ids: Optional[Iterable[str]] = None,
    role: Optional[str] = None,
    issuer: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict] = None,
) -> str:
    """
    Mint an access token in the CRM's format

    Used by tooling and tests; production tokens come from the main CRM.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=30))

    to_encode = {
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
        "sub": str(subject),
        "type": "access",
        "iss": issuer or (settings.AUTH_TRUSTED_ISSUERS[0] if settings.AUTH_TRUSTED_ISSUERS else ""),
        "team_ids": list(team_ids or []),
    }
    if role:
        to_encode["role"] = role
    if additional_claims:
        to_encode.update(additional_claims)

    return jose_jwt.encode({"alg": ALGORITHM}, to_encode, _jwt_key)


def user_context_from_token(token: str) -> UserContext:
    """
    Validate a bearer token and build the caller's UserContext

    Raises:
        HTTPException: 401 if the token is invalid, expired, untrusted or carries malformed identity claims
    """
    result = _token_validator.validate(token, token_type="access")
    claims = result.claims

    team_ids = claims.get("team_ids")
    if team_ids is None:
        team_ids = []
    role = claims.get("role")

    if not isinstance(team_ids, list) or not all(isinstance(t, str) for t in team_ids):
        logger.warning("Malformed team_ids claim", subject=result.subject, team_ids_type=type(team_ids).__name__)
        raise unauthorized("Invalid token claims")
    if role is not None and not isinstance(role, str):
        logger.warning("Malformed role claim", subject=result.subject, role_type=type(role).__name__)
        raise unauthorized("Invalid token claims")

    return UserContext.build(
        user_id=result.subject,
        team_ids=team_ids,
        role=role,
    )
