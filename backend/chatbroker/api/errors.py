"""
Exception handlers rendering failures as ``{"error": message, "type": error_type}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import ChatBrokerError

logger = logging.getLogger(__name__)


async def chat_broker_error_handler(request: Request, exc: ChatBrokerError) -> JSONResponse:
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        f"{exc.error_type}: {exc.message}",
        extra={"extra_fields": {
            "path": request.url.path,
            "status_code": exc.status_code,
            "error_type": exc.error_type,
        }}
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "type": exc.error_type},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "type": "internal_error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChatBrokerError, chat_broker_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
