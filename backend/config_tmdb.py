from __future__ import annotations

from typing import Final

from backend.config_base import (
    _get_env_float_at_least,
    _get_env_int_in_range,
    _get_env_str,
    _log_config_debug,
)

# ============================================================
# TMDb (API + HTTP + límites de paginación)
# ============================================================

_DEFAULT_BASE_URL: Final[str] = "https://api.themoviedb.org/3"
_DEFAULT_USER_AGENT: Final[str] = "media-discover/0.1 (server)"

TMDB_ACCESS_TOKEN: str | None = _get_env_str("TMDB_ACCESS_TOKEN", None)

TMDB_BASE_URL: Final[str] = (_get_env_str("TMDB_BASE_URL", _DEFAULT_BASE_URL) or _DEFAULT_BASE_URL).rstrip("/")

TMDB_GENRES_LANGUAGE: Final[str] = _get_env_str("TMDB_GENRES_LANGUAGE", "en") or "en"

TMDB_HTTP_TIMEOUT_SECONDS: float = _get_env_float_at_least("TMDB_HTTP_TIMEOUT_SECONDS", 10.0, min_v=0.5)

TMDB_HTTP_MAX_CONCURRENCY: int = _get_env_int_in_range("TMDB_HTTP_MAX_CONCURRENCY", 8, min_v=1, max_v=64)

TMDB_HTTP_SEMAPHORE_ACQUIRE_TIMEOUT: float = _get_env_float_at_least(
    "TMDB_HTTP_SEMAPHORE_ACQUIRE_TIMEOUT", 30.0, min_v=0.1
)

# Sin retries por defecto: un fallo upstream es fatal para la request actual.
TMDB_HTTP_RETRY_TOTAL: int = _get_env_int_in_range("TMDB_HTTP_RETRY_TOTAL", 0, min_v=0, max_v=10)
TMDB_HTTP_RETRY_BACKOFF_FACTOR: float = _get_env_float_at_least("TMDB_HTTP_RETRY_BACKOFF_FACTOR", 0.5, min_v=0.0)

TMDB_HTTP_USER_AGENT: Final[str] = _get_env_str("TMDB_HTTP_USER_AGENT", _DEFAULT_USER_AGENT) or _DEFAULT_USER_AGENT

# Límite duro de TMDb /discover: más allá de la página 500 devuelve error.
TMDB_MAX_PAGE: Final[int] = 500

_log_config_debug("TMDB_ACCESS_TOKEN", TMDB_ACCESS_TOKEN, secret=True)
_log_config_debug("TMDB_BASE_URL", TMDB_BASE_URL)
_log_config_debug("TMDB_HTTP_MAX_CONCURRENCY", TMDB_HTTP_MAX_CONCURRENCY)
