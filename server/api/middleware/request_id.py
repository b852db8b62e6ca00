from __future__ import annotations

"""
Middleware por request:
- Inyecta/propaga X-Request-ID
- Log de una línea (duración + status) con el resultado de caché si el router
  de búsqueda lo dejó en request.state (query_key / cached)
- Cabecera X-Cache: HIT | MISS en búsquedas
"""

import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response

from server.api.logging_config import configure_logging
from server.api.services import metrics
from server.api.settings import Settings

CallNext = Callable[[Request], Awaitable[Response]]
Middleware = Callable[[Request, CallNext], Awaitable[Response]]


def build_request_id_middleware(settings: Settings) -> Middleware:
    logger = configure_logging(settings)

    async def middleware(request: Request, call_next: CallNext) -> Response:
        start = time.monotonic()
        req_id = (request.headers.get("x-request-id") or "").strip() or uuid.uuid4().hex
        request.state.request_id = req_id

        metrics.inc("http_requests_total", 1)

        response: Response | None = None
        status_code = 500
        try:
            response = await call_next(request)
            status_code = int(response.status_code)
            return response
        finally:
            cached = getattr(request.state, "search_cached", None)
            logger.info(
                "request",
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status": status_code,
                    "duration_ms": int((time.monotonic() - start) * 1000),
                    "query_key": getattr(request.state, "search_query_key", None),
                    "cached": cached,
                },
            )
            if response is not None:
                response.headers["X-Request-ID"] = req_id
                if isinstance(cached, bool):
                    response.headers["X-Cache"] = "HIT" if cached else "MISS"

    return middleware
