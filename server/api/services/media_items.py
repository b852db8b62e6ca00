# validación de la request de búsqueda + serialización de la respuesta (géneros resueltos)
from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Final

from backend.config_tmdb import TMDB_MAX_PAGE
from backend.errors import InvalidDateFormat, InvalidDateRange, InvalidMediaKind, InvalidPage
from backend.genre_catalog import GenreCatalog
from backend.search_params import MediaKind, _is_blank, _lenient_int
from backend.search_service import SearchOutcome

PER_PAGE: Final[int] = 20

_ISO_DATE_RE: Final[re.Pattern[str]] = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _parse_date(value: str) -> datetime:
    s = value.strip()
    if not _ISO_DATE_RE.match(s):
        raise InvalidDateFormat(value)
    try:
        return datetime.strptime(s, "%Y-%m-%d")
    except ValueError:
        raise InvalidDateFormat(value) from None


def validate_search_params(raw: Mapping[str, Any]) -> None:
    """
    Validación de entrada previa al core (sin efectos laterales):
    - fechas YYYY-MM-DD y start_date <= end_date
    - media_type movie|tv
    - page (si viene) en 1..500
    """
    start_raw = raw.get("start_date")
    end_raw = raw.get("end_date")
    start = None if _is_blank(start_raw) else _parse_date(str(start_raw))
    end = None if _is_blank(end_raw) else _parse_date(str(end_raw))
    if start is not None and end is not None and start > end:
        raise InvalidDateRange(str(start_raw), str(end_raw))

    media_type = raw.get("media_type")
    if media_type not in {k.value for k in MediaKind}:
        raise InvalidMediaKind(media_type)

    page_raw = raw.get("page")
    if not _is_blank(page_raw):
        page = _lenient_int(page_raw)
        if page < 1 or page > TMDB_MAX_PAGE:
            raise InvalidPage(page_raw)


def serialize_media_items(items: Sequence[Mapping[str, Any]], catalog: GenreCatalog) -> list[dict[str, Any]]:
    """
    NormalizedItem -> forma pública. Los genre_ids se resuelven contra el
    catálogo local; ids desconocidos se descartan.
    """
    if not items:
        return []

    pairs: set[tuple[int, str]] = set()
    for item in items:
        kind = str(item.get("media_type") or "")
        for gid in item.get("genre_ids") or []:
            if isinstance(gid, int):
                pairs.add((gid, kind))

    genres = catalog.lookup(pairs) if pairs else {}

    out: list[dict[str, Any]] = []
    for item in items:
        kind = str(item.get("media_type") or "")
        resolved = [
            genres[(gid, kind)].as_dict()
            for gid in item.get("genre_ids") or []
            if isinstance(gid, int) and (gid, kind) in genres
        ]
        item_id = item.get("id")
        out.append(
            {
                "id": item_id,
                "tmdb_id": item_id,
                "media_type": kind,
                "title": item.get("title"),
                "release_date": item.get("release_date"),
                "overview": item.get("overview"),
                "poster_path": item.get("poster_path"),
                "popularity": item.get("popularity"),
                "vote_average": item.get("vote_average"),
                "vote_count": item.get("vote_count"),
                "original_language": item.get("original_language"),
                "adult": bool(item.get("adult") or False),
                "genres": resolved,
            }
        )
    return out


def build_search_response(outcome: SearchOutcome, catalog: GenreCatalog) -> dict[str, Any]:
    return {
        "data": serialize_media_items(outcome.items, catalog),
        "query_key": outcome.query_key,
        "cached": outcome.cached,
        "last_updated": outcome.last_updated.isoformat() if outcome.last_updated else None,
        "pagination": {
            "page": outcome.page,
            "total_pages": outcome.total_pages,
            "total_results": outcome.total_results,
            "per_page": PER_PAGE,
        },
    }
