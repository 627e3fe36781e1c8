from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from notifyhub.domain.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

_STATUS_CODES: list[tuple[type[DomainError], int]] = [
    (NotFoundError, 404),
    (ValidationError, 422),
    (ConflictError, 409),
    (UnauthorizedError, 401),
    (ForbiddenError, 403),
]


def _map_to_status_code(exc: DomainError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def configure_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(
            request: Request, exc: DomainError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=_map_to_status_code(exc),
            content={"detail": exc.message},
        )
