"""
Exception handlers that turn domain failures into JSON error bodies.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from startickets.schemas.checkout import ErrorResponse
from startickets.services.errors import DomainError
from startickets.core.logging import get_logger

logger = get_logger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "domain_error",
            error_kind=exc.kind.value,
            status_code=exc.status_code,
            exc_info=exc.__cause__ or exc,
        )
    else:
        logger.warning(
            "domain_error",
            error_kind=exc.kind.value,
            status_code=exc.status_code,
            reason=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def error_responses(*status_codes: int) -> dict:
    """OpenAPI `responses=` entries for the domain errors a route can raise."""
    return {code: {"model": ErrorResponse} for code in status_codes}


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
