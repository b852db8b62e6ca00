from __future__ import annotations

from typing import Final

from backend.config_base import (
    DATA_DIR,
    _get_env_bool,
    _get_env_int_in_range,
    _get_env_str,
    _log_config_debug,
)

# ============================================================
# Persistencia (SQLAlchemy) + horizontes de frescura
# ============================================================

_DEFAULT_DATABASE_URL: Final[str] = f"sqlite:///{(DATA_DIR / 'media_discover.db').as_posix()}"

DATABASE_URL: Final[str] = _get_env_str("DATABASE_URL", _DEFAULT_DATABASE_URL) or _DEFAULT_DATABASE_URL

SQL_ECHO: bool = _get_env_bool("SQL_ECHO", False)

# Consultas "anchas" (sin filtros) cambian más rápido upstream: refresco agresivo.
CACHE_BROAD_MAX_AGE_SECONDS: int = _get_env_int_in_range(
    "CACHE_BROAD_MAX_AGE_SECONDS", 60 * 60, min_v=1, max_v=60 * 60 * 24 * 30
)

# Consultas "estrechas" (fecha/género/rating) son más estables.
CACHE_FILTERED_MAX_AGE_SECONDS: int = _get_env_int_in_range(
    "CACHE_FILTERED_MAX_AGE_SECONDS", 60 * 60 * 24, min_v=1, max_v=60 * 60 * 24 * 365
)

# Tope de total_pages persistido/expuesto (alineado con TMDb).
CACHE_MAX_TOTAL_PAGES: Final[int] = 500

# Tope de almacenamiento para `page` (columna INTEGER de 32 bits).
CACHE_MAX_STORED_PAGE: Final[int] = 2**31 - 1

_log_config_debug("DATABASE_URL", DATABASE_URL.split("@")[-1])
_log_config_debug("CACHE_MAX_AGE_SECONDS", f"broad={CACHE_BROAD_MAX_AGE_SECONDS} filtered={CACHE_FILTERED_MAX_AGE_SECONDS}")
