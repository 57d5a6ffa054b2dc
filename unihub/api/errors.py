"""
Maps typed application errors (and transient storage failures) to responses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from unihub.core.exceptions import AppError, TransientStoreError
from unihub.core.logging import get_logger
from unihub.core.metrics import store_errors

logger = get_logger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_error", code=exc.code, detail=exc.message)
    else:
        logger.info("request_rejected", code=exc.code, status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    store_errors.inc()
    logger.error("store_unavailable", error_type=type(exc).__name__, error=str(exc))
    return await app_error_handler(request, TransientStoreError())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(OperationalError, store_error_handler)
    app.add_exception_handler(PoolTimeoutError, store_error_handler)
