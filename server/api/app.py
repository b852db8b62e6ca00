from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from server.api.deps import get_settings
from server.api.middleware import build_request_id_middleware, install_exception_handlers
from server.api.routers.genres import router as genres_router
from server.api.routers.health import router as health_router
from server.api.routers.media_items import router as media_items_router

_settings = get_settings()


def create_app() -> FastAPI:
    app = FastAPI(title="Media Discover API", version="1.0.0")

    app.add_middleware(GZipMiddleware, minimum_size=max(0, _settings.gzip_min_size))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_settings.cors_allow_origins(),
        allow_credentials=_settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.middleware("http")(build_request_id_middleware(_settings))
    install_exception_handlers(app, _settings)

    app.include_router(health_router)
    app.include_router(media_items_router)
    app.include_router(genres_router)

    return app


app = create_app()
