import logging
from datetime import datetime
from typing import Any

from fastapi import HTTPException, status

from ..domain.errors import DomainError, ErrorKind, UpstreamError
from ..utils.audit_log import emit_audit_log
from ..utils.time import to_utc_naive

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_FAILED: status.HTTP_422_UNPROCESSABLE_CONTENT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.UPSTREAM_FAILED: status.HTTP_502_BAD_GATEWAY,
}


def http_error(exc: DomainError) -> HTTPException:
    """Map a domain error to its status code; only the stable message reaches the caller."""
    if isinstance(exc, UpstreamError):
        logger.error("upstream %s failed: %s", exc.source, exc.detail)
    elif exc.detail:
        logger.info("%s: %s", type(exc).__name__, exc.detail)
    return HTTPException(status_code=_STATUS_BY_KIND[exc.kind], detail=exc.message)


def utc_naive_or_400(*values: datetime) -> list[datetime]:
    if any(value.tzinfo is None for value in values):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="datetimes must have timezone")
    return [to_utc_naive(value) for value in values]


def audit(**kwargs: Any) -> None:
    """Write an audit record; a failed write fails the request."""
    try:
        emit_audit_log(**kwargs)
    except RuntimeError as exc:
        logger.exception("audit log write failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc
