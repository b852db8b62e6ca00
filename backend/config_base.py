"""
backend/config_base.py

Base común de configuración (config_tmdb.py / config_cache.py la importan):

- Carga .env UNA vez (sin pisar env vars ya definidas)
- Paths del proyecto (PROJECT_DIR / DATA_DIR, donde vive el SQLite por defecto)
- Lectura tolerante de env vars: valor inválido => warning + default
- Lectores con rango (_get_env_int_in_range / _get_env_float_at_least) para
  timeouts, concurrencia y horizontes de caché
- Flags globales (DEBUG_MODE/SILENT_MODE/LOG_LEVEL/HTTP_DEBUG) que lee backend/logger.py

Este módulo NO debe importar config_*.py para evitar ciclos.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Final, TypeVar

from dotenv import load_dotenv

load_dotenv(override=False)

# Import tardío: el logger lee los flags de este módulo vía sys.modules
from backend import logger as _logger  # noqa: E402

_N = TypeVar("_N", int, float)


# ============================================================
# Lectura de env vars
# ============================================================

_TRUE_SET: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSE_SET: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


def _clean_env_raw(v: object | None) -> str | None:
    """Recorta espacios y comillas envolventes ('x' / "x"); vacío => None."""
    if v is None:
        return None
    s = str(v).strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    return s or None


def _get_env_str(name: str, default: str | None = None) -> str | None:
    v = _clean_env_raw(os.getenv(name))
    return default if v is None else v


def _get_env_number(name: str, default: _N, cast: Callable[[str], _N]) -> _N:
    v = _clean_env_raw(os.getenv(name))
    if v is None:
        return default
    try:
        return cast(v)
    except ValueError:
        _logger.warning(f"Invalid {cast.__name__} for {name!r}: {v!r}, using default {default}", always=True)
        return default


def _get_env_int(name: str, default: int) -> int:
    return _get_env_number(name, default, int)


def _get_env_float(name: str, default: float) -> float:
    return _get_env_number(name, default, float)


def _get_env_bool(name: str, default: bool) -> bool:
    v = _clean_env_raw(os.getenv(name))
    if v is None:
        return default
    s = v.lower()
    if s in _TRUE_SET:
        return True
    if s in _FALSE_SET:
        return False
    _logger.warning(f"Invalid bool for {name!r}: {v!r}, using default {default}", always=True)
    return default


# ============================================================
# Límites
# ============================================================


def _cap_int(name: str, value: int, *, min_v: int, max_v: int) -> int:
    bounded = max(min_v, min(value, max_v))
    if bounded != value:
        _logger.warning(f"{name}={value} out of range [{min_v}, {max_v}]; using {bounded}", always=True)
    return bounded


def _cap_float_min(name: str, value: float, *, min_v: float) -> float:
    if value < min_v:
        _logger.warning(f"{name}={value} < {min_v}; using {min_v}", always=True)
        return min_v
    return value


def _get_env_int_in_range(name: str, default: int, *, min_v: int, max_v: int) -> int:
    return _cap_int(name, _get_env_int(name, default), min_v=min_v, max_v=max_v)


def _get_env_float_at_least(name: str, default: float, *, min_v: float) -> float:
    return _cap_float_min(name, _get_env_float(name, default), min_v=min_v)


# ============================================================
# Paths
# ============================================================


def _resolve_path(raw: str, *, base: Path) -> Path:
    p = Path(raw).expanduser()
    return p if p.is_absolute() else (base / p)


BASE_DIR: Final[Path] = Path(__file__).resolve().parent
PROJECT_DIR: Final[Path] = BASE_DIR.parent
DATA_DIR: Final[Path] = _resolve_path(_get_env_str("DATA_DIR", "data") or "data", base=PROJECT_DIR)


# ============================================================
# Modo de ejecución
# ============================================================

DEBUG_MODE: bool = _get_env_bool("DEBUG_MODE", False)
SILENT_MODE: bool = _get_env_bool("SILENT_MODE", False)

HTTP_DEBUG: bool = _get_env_bool("HTTP_DEBUG", False)
LOG_LEVEL: str | None = _get_env_str("LOG_LEVEL", None)


def _mask_secret(value: str | None) -> str:
    if not value:
        return "<unset>"
    return f"{value[:4]}…({len(value)} chars)" if len(value) > 8 else "***"


def _log_config_debug(label: str, value: object, *, secret: bool = False) -> None:
    """Vuelca un valor efectivo de configuración (solo DEBUG_MODE); secretos enmascarados."""
    shown = _mask_secret(None if value is None else str(value)) if secret else value
    _logger.debug_ctx("CONFIG", f"{label}: {shown}")
