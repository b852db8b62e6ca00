from __future__ import annotations

from server.api.middleware.errors import build_exception_handler, install_exception_handlers
from server.api.middleware.request_id import build_request_id_middleware

__all__ = ["build_exception_handler", "build_request_id_middleware", "install_exception_handlers"]
