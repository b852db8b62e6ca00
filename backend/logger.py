from __future__ import annotations

"""
backend/logger.py

Logger central del backend (fachada sobre `logging`).

API estable
-----------
- debug / info / warning / error
- debug_ctx(tag, msg) (debug contextual alineado con SILENT/DEBUG)
- truncate_line(text) (para no volcar bodies enormes de TMDb al log)

Política
--------
- SILENT_MODE=True: suprime debug/info/warning (salvo always=True). `error()` siempre emite.
- DEBUG_MODE=True: habilita `debug_ctx`.
- El logging nunca debe romper una request.

Notas técnicas
--------------
- No importamos `backend.config_base` directamente (evitamos circular imports:
  config_base usa este logger para avisar de env vars inválidas).
  Leemos los flags desde `sys.modules` si ya está importado.
- Inicialización idempotente. Si el proceso ya tiene handlers (uvicorn), se respetan.
"""

import logging
import sys
from types import ModuleType, TracebackType
from typing import Final, Mapping, TypedDict

from typing_extensions import TypeAlias, Unpack

# ============================================================================
# TIPOS: kwargs seguros para logging
# ============================================================================

_ExcInfoTuple: TypeAlias = tuple[type[BaseException], BaseException, TracebackType | None]
ExcInfo: TypeAlias = bool | _ExcInfoTuple | BaseException | None


class LogKwargs(TypedDict, total=False):
    """Subconjunto de kwargs soportados por logging.Logger.* que reenviamos."""

    exc_info: ExcInfo
    stack_info: bool
    stacklevel: int
    extra: Mapping[str, object] | None


# ============================================================================
# CONFIGURACIÓN GLOBAL
# ============================================================================

LOGGER_NAME: Final[str] = "media_discover"

_LOGGER: logging.Logger | None = None
_CONFIGURED: bool = False

_DEFAULT_LOG_LINE_MAX_CHARS: Final[int] = 500

_NOISY_LOGGERS: Final[tuple[str, ...]] = (
    "urllib3",
    "urllib3.connectionpool",
    "requests",
    "sqlalchemy.engine",
)


def _safe_get_cfg() -> ModuleType | None:
    """Devuelve backend.config_base si ya ha sido importado."""
    mod = sys.modules.get("backend.config_base")
    return mod if isinstance(mod, ModuleType) else None


def _cfg_bool(name: str, default: bool = False) -> bool:
    cfg = _safe_get_cfg()
    if cfg is None:
        return default
    return bool(getattr(cfg, name, default))


def _cfg_str(name: str, default: str | None = None) -> str | None:
    cfg = _safe_get_cfg()
    if cfg is None:
        return default
    v = getattr(cfg, name, default)
    if v is None:
        return None
    s = str(v).strip()
    return s or default


def is_silent_mode() -> bool:
    return _cfg_bool("SILENT_MODE", False)


def is_debug_mode() -> bool:
    return _cfg_bool("DEBUG_MODE", False)


def _resolve_level_from_config() -> int:
    """
    Prioridad:
      1) LOG_LEVEL explícito
      2) DEBUG_MODE
      3) INFO
    """
    lvl = _cfg_str("LOG_LEVEL", None)
    if isinstance(lvl, str) and lvl:
        mapped = logging.getLevelName(lvl.upper())
        if isinstance(mapped, int):
            return mapped

    if is_debug_mode():
        return logging.DEBUG
    return logging.INFO


def _configure_external_loggers() -> None:
    """Baja el nivel de urllib3/requests/sqlalchemy salvo HTTP_DEBUG=True."""
    if _cfg_bool("HTTP_DEBUG", False):
        return
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _ensure_configured() -> logging.Logger:
    global _LOGGER, _CONFIGURED

    if _CONFIGURED and _LOGGER is not None:
        return _LOGGER

    level = _resolve_level_from_config()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )

    _configure_external_loggers()

    _LOGGER = logging.getLogger(LOGGER_NAME)
    _LOGGER.setLevel(level)
    _CONFIGURED = True
    return _LOGGER


def get_logger() -> logging.Logger:
    """Devuelve el logger principal, asegurando inicialización."""
    return _ensure_configured()


def _should_log(*, always: bool) -> bool:
    return always or not is_silent_mode()


# ============================================================================
# API PÚBLICA DE LOGGING
# ============================================================================


def debug(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    if not _should_log(always=always):
        return
    _ensure_configured().debug(msg, *args, **kwargs)


def info(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    if not _should_log(always=always):
        return
    _ensure_configured().info(msg, *args, **kwargs)


def warning(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    if not _should_log(always=always):
        return
    _ensure_configured().warning(msg, *args, **kwargs)


def error(msg: str, *args: object, **kwargs: Unpack[LogKwargs]) -> None:
    """ERROR siempre se emite (ignora SILENT_MODE)."""
    _ensure_configured().error(msg, *args, **kwargs)


def truncate_line(text: str, max_chars: int | None = None) -> str:
    limit = max_chars if isinstance(max_chars, int) and max_chars > 0 else _DEFAULT_LOG_LINE_MAX_CHARS
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 12)] + " …(truncated)"


def debug_ctx(tag: str, msg: object) -> None:
    """
    Debug contextual con tag: "[TAG][DEBUG] ...".
    No-op si DEBUG_MODE=False.
    """
    if not is_debug_mode():
        return
    t = (tag or "DEBUG").strip().upper()
    info(f"[{t}][DEBUG] {msg}", always=True)
