"""
Typed failures for the mess API.

Every error raised by a service is a MessError: an HTTPException carrying a
stable machine-readable ``code`` next to the human-readable ``detail``. The
exception logs itself when constructed, so call sites only raise.

Rendered by ``mess_error_handler`` as::

    {"error": "conflict", "detail": "Cannot cancel a meal that is checked_in."}
"""

from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from mess_api.core.logging import get_logger

logger = get_logger(__name__)


class MessError(HTTPException):
    code = "error"

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, code=self.code, status_code=status_code, **log_context)
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class UnauthorizedError(MessError):
    """Missing, invalid or expired credential (401)."""

    code = "unauthorized"

    def __init__(self, detail: str = "Unauthorized", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
            **log_context,
        )


class ForbiddenError(MessError):
    """Valid credential, wrong role (403). Shares the unauthorized code."""

    code = "unauthorized"

    def __init__(self, required_roles: tuple[str, ...] | list[str], **log_context: Any):
        roles = ", ".join(required_roles)
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Unauthorized. Requires role: {roles}",
            required_roles=list(required_roles),
            **log_context,
        )


class ValidationError(MessError):
    code = "validation_error"

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail, **log_context)


class MalformedCredentialError(ValidationError):
    """The scanned QR payload is not a check-in credential."""

    code = "malformed_credential"

    def __init__(self, detail: str = "Invalid QR code format", **log_context: Any):
        super().__init__(detail, **log_context)


class NotFoundError(MessError):
    code = "not_found"

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail, **log_context)


class ConflictError(MessError):
    """The current state of a record forbids the requested transition."""

    code = "conflict"

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail, **log_context)


class UpstreamUnavailableError(MessError):
    code = "upstream_unavailable"

    def __init__(self, detail: str = "Service temporarily unavailable", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            log_level="error",
            **log_context,
        )


async def mess_error_handler(request: Request, exc: MessError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.detail},
        headers=exc.headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "detail": "Internal server error"},
    )
