from __future__ import annotations

"""
backend/search_params.py

Normalización "bolsa de parámetros -> registro tipado" para búsquedas discover.

Reglas de coerción (totales, una por campo):
- media_type: obligatorio, {"movie", "tv"}. Cualquier otro valor => InvalidMediaKind.
- start_date / end_date: texto recortado; vacío => None. NO se revalida el orden
  (eso lo hace la capa HTTP antes de llegar aquí).
- genre_ids: "3,1,2" o secuencia. Cada elemento se convierte a int de forma laxa
  (dígitos iniciales; no numérico => 0). Dedup + orden ascendente.
- min_rating / max_rating: float laxo (prefijo numérico; no numérico => 0.0).
  Ausente/vacío => None (NO 0.0).
- sort_by: vacío => "popularity.desc". El vocabulario por tipo se valida en
  backend/tmdb_client.py.
- page: int laxo; vacío => 1; < 1 => 1. El tope 500 es del cliente TMDb; aquí
  solo se acota a CACHE_MAX_STORED_PAGE (2**31 - 1) para que quepa en la
  columna INTEGER de la caché. 9999 y 500 siguen siendo claves distintas.
"""

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final

from backend.config_cache import CACHE_MAX_STORED_PAGE
from backend.errors import InvalidMediaKind


class MediaKind(str, Enum):
    MOVIE = "movie"
    TV = "tv"


DEFAULT_SORT_TOKEN: Final[str] = "popularity.desc"
DEFAULT_PAGE: Final[int] = 1

_INT_PREFIX_RE: Final[re.Pattern[str]] = re.compile(r"^\s*\+?(\d+)")
_LENIENT_INT_SATURATION: Final[int] = 10**18
_FLOAT_PREFIX_RE: Final[re.Pattern[str]] = re.compile(
    r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)"
)


@dataclass(frozen=True)
class NormalizedSearchRequest:
    media_kind: MediaKind
    start_date: str | None = None
    end_date: str | None = None
    genre_ids: tuple[int, ...] = ()
    min_rating: float | None = None
    max_rating: float | None = None
    sort_token: str = DEFAULT_SORT_TOKEN
    page: int = DEFAULT_PAGE

    @property
    def has_filters(self) -> bool:
        """True si la consulta es "estrecha" (fecha, género o rating)."""
        return bool(
            self.start_date
            or self.end_date
            or self.genre_ids
            or self.min_rating is not None
            or self.max_rating is not None
        )


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def _lenient_int(value: object) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    m = _INT_PREFIX_RE.match("" if value is None else str(value))
    if not m:
        return 0
    digits = m.group(1).lstrip("0") or "0"
    # int() rechaza cadenas de miles de dígitos: se satura antes
    return int(digits) if len(digits) <= 18 else _LENIENT_INT_SATURATION


def _lenient_float(value: object) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    m = _FLOAT_PREFIX_RE.match("" if value is None else str(value))
    return float(m.group(1)) if m else 0.0


def _optional_text(value: object) -> str | None:
    if _is_blank(value):
        return None
    return str(value).strip()


def _optional_float(value: object) -> float | None:
    if _is_blank(value):
        return None
    return _lenient_float(value)


def normalize_media_kind(value: object) -> MediaKind:
    if isinstance(value, MediaKind):
        return value
    if _is_blank(value):
        raise InvalidMediaKind(value)
    try:
        return MediaKind(str(value).strip())
    except ValueError:
        raise InvalidMediaKind(value) from None


def normalize_genre_ids(value: object) -> tuple[int, ...]:
    if _is_blank(value):
        return ()

    elements: Iterable[object]
    if isinstance(value, str):
        elements = [p.strip() for p in value.split(",") if p.strip()]
    elif isinstance(value, (list, tuple, set, frozenset)):
        elements = value
    else:
        elements = [value]

    return tuple(sorted({max(0, _lenient_int(v)) for v in elements}))


def normalize_page(value: object) -> int:
    if _is_blank(value):
        return DEFAULT_PAGE
    return max(1, min(_lenient_int(value), CACHE_MAX_STORED_PAGE))


def normalize(raw: Mapping[str, Any]) -> NormalizedSearchRequest:
    """
    Convierte la bolsa de parámetros de una request en un NormalizedSearchRequest.

    Lanza InvalidMediaKind si media_type falta o no es movie/tv. Es el único
    fallo duro: el resto de campos se normaliza siempre.
    """
    media_kind = normalize_media_kind(raw.get("media_type"))

    sort_token = _optional_text(raw.get("sort_by")) or DEFAULT_SORT_TOKEN

    return NormalizedSearchRequest(
        media_kind=media_kind,
        start_date=_optional_text(raw.get("start_date")),
        end_date=_optional_text(raw.get("end_date")),
        genre_ids=normalize_genre_ids(raw.get("genre_ids")),
        min_rating=_optional_float(raw.get("min_rating")),
        max_rating=_optional_float(raw.get("max_rating")),
        sort_token=sort_token,
        page=normalize_page(raw.get("page")),
    )
