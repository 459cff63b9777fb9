"""Map settlement-core errors to HTTP responses.

Every ``WasteBankError`` becomes ``{"error": {code, message, category, retryable}}``
with a status derived from its category; storage outages become 503.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from domain.errors import (
    CartClosed,
    CatalogUnavailable,
    CommitInProgress,
    ErrorCategory,
    PersistenceUnavailable,
    WasteBankError,
)
from domain.stores import StoreUnavailable

logger = logging.getLogger(__name__)

_CATEGORY_STATUS = {
    ErrorCategory.INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.LOOKUP: status.HTTP_404_NOT_FOUND,
    ErrorCategory.COMMIT: status.HTTP_409_CONFLICT,
}


def status_for(exc: WasteBankError) -> int:
    if isinstance(exc, (CatalogUnavailable, PersistenceUnavailable)):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, (CartClosed, CommitInProgress)):
        return status.HTTP_409_CONFLICT
    return _CATEGORY_STATUS[exc.category]


def error_body(exc: WasteBankError) -> dict[str, dict[str, object]]:
    return {
        "error": {
            "code": exc.code,
            "message": exc.message,
            "category": exc.category.value,
            "retryable": exc.retryable,
        }
    }


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(WasteBankError)
    async def waste_bank_error_handler(request: Request, exc: WasteBankError) -> JSONResponse:
        status_code = status_for(exc)
        level = logging.ERROR if status_code >= 500 else logging.WARNING
        logger.log(level, "%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content=error_body(exc))

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
        logger.error("Storage unavailable on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=error_body(PersistenceUnavailable("Storage is unavailable")),
        )
