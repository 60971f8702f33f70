"""Error taxonomy for permission storage and resolution."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, status


@dataclass(frozen=True)
class InboxPermissionError(Exception):
    code: str
    detail: str
    status_code: int = 400
    retryable: bool = False

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.detail)


class PermissionStoreUnavailable(InboxPermissionError):
    """The store could not complete a fetch. Never means "no access"."""

    def __init__(self, detail: str, code: str = "permission_store_unavailable"):
        super().__init__(
            code=code,
            detail=detail,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            retryable=True,
        )


AUTHORIZATION_UNDETERMINED_DETAIL = "Authorization could not be determined"


def authorization_undetermined(exc: PermissionStoreUnavailable) -> HTTPException:
    """Map a store failure to the caller-facing 503, never to a 403."""
    return HTTPException(
        status_code=exc.status_code,
        detail=AUTHORIZATION_UNDETERMINED_DETAIL,
    )
