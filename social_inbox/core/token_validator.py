"""
Token validation for identities issued by the main CRM.

This service never issues credentials. It verifies the signature, type,
expiry and issuer of the bearer token and hands back its claims.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from fastapi import HTTPException, status
from joserfc import jwt as jose_jwt
from joserfc.jwk import OctKey
from joserfc.errors import BadSignatureError, DecodeError, ExpiredTokenError, InvalidTokenError
import structlog

logger = structlog.get_logger()


def unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@dataclass(frozen=True)
class TokenValidationResult:
    subject: str
    claims: dict
    issuer: str


class TokenValidationStrategy(ABC):
    @abstractmethod
    def validate(self, token: str, token_type: str = "access") -> TokenValidationResult:
        raise NotImplementedError


class SharedSecretJWTStrategy(TokenValidationStrategy):
    def __init__(self, secret_key: str, algorithm: str) -> None:
        self._jwt_key = OctKey.import_key(secret_key)
        self._algorithm = algorithm

    def validate(self, token: str, token_type: str = "access") -> TokenValidationResult:
        try:
            token_obj = jose_jwt.decode(token, self._jwt_key, algorithms=[self._algorithm])
            payload = token_obj.claims
        except (BadSignatureError, DecodeError, ExpiredTokenError, InvalidTokenError, ValueError) as exc:
            logger.warning("JWT verification failed", error=str(exc))
            raise unauthorized("Could not validate credentials")

        if payload.get("type") != token_type:
            logger.warning("Invalid token type", expected=token_type, actual=payload.get("type"))
            raise unauthorized("Invalid token type")

        subject = payload.get("sub")
        if not subject:
            logger.warning("Token missing subject")
            raise unauthorized("Invalid token: missing subject")

        exp = payload.get("exp")
        if exp is not None and time.time() > float(exp):
            logger.warning("Token expired", subject=subject)
            raise unauthorized("Token expired")

        issuer = payload.get("iss") or ""
        logger.debug("Token verified successfully", subject=subject, issuer=issuer, type=token_type)
        return TokenValidationResult(subject=str(subject), claims=dict(payload), issuer=issuer)


class TrustedIssuerTokenValidator:
    """Runs a strategy and rejects tokens from issuers outside the trusted set."""

    def __init__(self, *, strategy: TokenValidationStrategy, trusted_issuers: list[str]) -> None:
        self._strategy = strategy
        self._trusted_issuers = set(trusted_issuers)

    def validate(self, token: str, token_type: str = "access") -> TokenValidationResult:
        result = self._strategy.validate(token, token_type=token_type)
        if self._trusted_issuers and result.issuer not in self._trusted_issuers:
            logger.warning(
                "Token issuer is not trusted",
                issuer=result.issuer,
                trusted=sorted(self._trusted_issuers),
            )
            raise unauthorized("Untrusted token issuer")
        return result
