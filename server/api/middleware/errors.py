# exception handlers: errores de dominio -> {"error": ...}; resto -> 500 con error_id
from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from backend.errors import UpstreamError, ValidationError
from server.api.logging_config import configure_logging
from server.api.services import metrics
from server.api.settings import Settings

Handler = Callable[[Request, Exception], Awaitable[JSONResponse]]


def _request_id(request: Request) -> str | None:
    req_id = getattr(request.state, "request_id", None)
    return req_id if isinstance(req_id, str) and req_id else None


def build_validation_error_handler(settings: Settings) -> Handler:
    """InvalidMediaKind / InvalidSortToken / InvalidDate* / InvalidPage -> 422."""
    logger = configure_logging(settings)

    async def handler(request: Request, exc: Exception) -> JSONResponse:
        metrics.inc("search_validation_errors_total", 1)
        logger.info(
            "validation_error",
            extra={"request_id": _request_id(request), "path": request.url.path, "error": str(exc)},
        )
        return JSONResponse(status_code=422, content={"error": str(exc)})

    return handler


def build_upstream_error_handler(settings: Settings) -> Handler:
    """TMDb caído o con status no-2xx -> 502 (fallo del lado servidor, sin retry)."""
    logger = configure_logging(settings)

    async def handler(request: Request, exc: Exception) -> JSONResponse:
        status = exc.status_code if isinstance(exc, UpstreamError) else None
        metrics.inc("search_upstream_errors_total", 1)
        logger.error(
            "upstream_error",
            extra={"request_id": _request_id(request), "path": request.url.path, "upstream_status": status},
        )
        return JSONResponse(status_code=502, content={"error": str(exc)})

    return handler


def build_exception_handler(settings: Settings) -> Handler:
    logger = configure_logging(settings)

    async def handler(request: Request, exc: Exception) -> JSONResponse:
        error_id = uuid.uuid4().hex
        req_id = _request_id(request)

        logger.exception(
            "unhandled_exception",
            extra={"error_id": error_id, "request_id": req_id, "path": request.url.path},
        )
        metrics.inc("http_errors_5xx_total", 1)

        payload: dict[str, Any] = {"detail": "Internal Server Error", "error_id": error_id}
        if req_id:
            payload["request_id"] = req_id

        return JSONResponse(status_code=500, content=payload)

    return handler


def install_exception_handlers(app: Any, settings: Settings) -> None:
    app.add_exception_handler(ValidationError, build_validation_error_handler(settings))
    app.add_exception_handler(UpstreamError, build_upstream_error_handler(settings))
    app.add_exception_handler(Exception, build_exception_handler(settings))
