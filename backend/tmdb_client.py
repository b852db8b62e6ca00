from __future__ import annotations

"""
backend/tmdb_client.py

Cliente TMDb (discover + listado de géneros).

🧠 Principios
-------------
1) Traducción explícita:
   - NormalizedSearchRequest -> vocabulario de query params de TMDb.
   - Respuesta cruda -> NormalizedItem (title/release_date vs name/first_air_date).

2) Límites autoritativos aquí:
   - page se recorta a [1, 500] SOLO en la llamada saliente.
   - total_pages reportado se recorta a 500.

3) Fallo upstream = fatal para la request:
   - status no-2xx => UpstreamError(status_code)
   - fallo de transporte / JSON inválido => UpstreamError
   - Sin retries internos por defecto (TMDB_HTTP_RETRY_TOTAL=0). Reintentar, si
     procede, es cosa del caller.

4) ThreadPool safe:
   - requests.Session compartida (pooling) con HTTPAdapter.
   - Semaphore para acotar concurrencia contra TMDb.

Configuración (backend/config_tmdb.py)
--------------------------------------
- TMDB_ACCESS_TOKEN (Bearer)
- TMDB_BASE_URL
- TMDB_HTTP_TIMEOUT_SECONDS
- TMDB_HTTP_MAX_CONCURRENCY / TMDB_HTTP_SEMAPHORE_ACQUIRE_TIMEOUT
- TMDB_HTTP_RETRY_TOTAL / TMDB_HTTP_RETRY_BACKOFF_FACTOR
- TMDB_HTTP_USER_AGENT
"""

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Final, TypedDict

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from urllib3.util.retry import Retry

from backend import logger as logger
from backend.config_tmdb import (
    TMDB_ACCESS_TOKEN,
    TMDB_BASE_URL,
    TMDB_GENRES_LANGUAGE,
    TMDB_HTTP_MAX_CONCURRENCY,
    TMDB_HTTP_RETRY_BACKOFF_FACTOR,
    TMDB_HTTP_RETRY_TOTAL,
    TMDB_HTTP_SEMAPHORE_ACQUIRE_TIMEOUT,
    TMDB_HTTP_TIMEOUT_SECONDS,
    TMDB_HTTP_USER_AGENT,
    TMDB_MAX_PAGE,
)
from backend.errors import InvalidSortToken, UpstreamError
from backend.search_params import DEFAULT_SORT_TOKEN, MediaKind, NormalizedSearchRequest

# ============================================================
#                  VOCABULARIO DE ORDENACIÓN
# ============================================================


def _both_directions(*fields: str) -> frozenset[str]:
    return frozenset(f"{f}.{d}" for f in fields for d in ("asc", "desc"))


MOVIE_SORT_OPTIONS: Final[frozenset[str]] = _both_directions(
    "original_title",
    "popularity",
    "revenue",
    "primary_release_date",
    "title",
    "vote_average",
    "vote_count",
)

TV_SORT_OPTIONS: Final[frozenset[str]] = _both_directions(
    "first_air_date",
    "name",
    "original_name",
    "popularity",
    "vote_average",
    "vote_count",
)

SORT_OPTIONS: Final[Mapping[MediaKind, frozenset[str]]] = MappingProxyType(
    {MediaKind.MOVIE: MOVIE_SORT_OPTIONS, MediaKind.TV: TV_SORT_OPTIONS}
)

# Eje de fecha por tipo: películas por estreno, series por primera emisión.
_DATE_FIELD: Final[Mapping[MediaKind, str]] = MappingProxyType(
    {MediaKind.MOVIE: "primary_release_date", MediaKind.TV: "first_air_date"}
)


def validate_sort_token(media_kind: MediaKind, sort_token: str) -> str:
    allowed = SORT_OPTIONS[media_kind]
    if sort_token not in allowed:
        raise InvalidSortToken(sort_token, media_kind.value, allowed)
    return sort_token


def clamp_page(page: object) -> int:
    try:
        n = int(page)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        n = 1
    return max(1, min(n, TMDB_MAX_PAGE))


# ============================================================
#                  FORMA NORMALIZADA
# ============================================================


class NormalizedItem(TypedDict):
    """Una ficha del catálogo tal y como se persiste en caché."""

    id: int | None
    media_type: str
    title: str | None
    release_date: str | None
    overview: str | None
    poster_path: str | None
    popularity: float | None
    vote_average: float | None
    vote_count: int | None
    original_language: str | None
    adult: bool
    genre_ids: list[int]


@dataclass(frozen=True)
class SearchResult:
    items: list[NormalizedItem] = field(default_factory=list)
    total_pages: int = 1
    total_results: int = 0


def build_query_params(req: NormalizedSearchRequest) -> dict[str, str | int | float]:
    """NormalizedSearchRequest -> query params de /discover/{movie|tv}."""
    query: dict[str, str | int | float] = {}

    date_field = _DATE_FIELD[req.media_kind]
    if req.start_date:
        query[f"{date_field}.gte"] = req.start_date
    if req.end_date:
        query[f"{date_field}.lte"] = req.end_date

    if req.genre_ids:
        query["with_genres"] = ",".join(str(g) for g in req.genre_ids)
    if req.min_rating is not None:
        query["vote_average.gte"] = req.min_rating
    if req.max_rating is not None:
        query["vote_average.lte"] = req.max_rating

    query["sort_by"] = req.sort_token or DEFAULT_SORT_TOKEN
    query["page"] = clamp_page(req.page)
    return query


def normalize_item(raw: Mapping[str, Any], media_kind: MediaKind) -> NormalizedItem:
    is_tv = media_kind is MediaKind.TV
    genre_ids = raw.get("genre_ids") or []
    return {
        "id": raw.get("id"),
        "media_type": media_kind.value,
        "title": raw.get("name") if is_tv else raw.get("title"),
        "release_date": raw.get("first_air_date") if is_tv else raw.get("release_date"),
        "overview": raw.get("overview"),
        "poster_path": raw.get("poster_path"),
        "popularity": raw.get("popularity"),
        "vote_average": raw.get("vote_average"),
        "vote_count": raw.get("vote_count"),
        "original_language": raw.get("original_language"),
        "adult": bool(raw.get("adult") or False),
        "genre_ids": list(genre_ids) if isinstance(genre_ids, (list, tuple)) else [],
    }


def _int_or(value: object, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return default


# ============================================================
#                  CLIENTE HTTP
# ============================================================


def _build_session(*, pool_size: int, retry_total: int, backoff_factor: float) -> requests.Session:
    """
    requests.Session con pooling alineado al límite de concurrencia.

    Retry de urllib3 solo si TMDB_HTTP_RETRY_TOTAL > 0 (por defecto desactivado).
    """
    session = requests.Session()
    retries = Retry(
        total=retry_total,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retries, pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"User-Agent": TMDB_HTTP_USER_AGENT, "accept": "application/json"})
    return session


class TmdbClient:
    """
    Cliente de TMDb usado por el orquestador de búsqueda y por el catálogo de géneros.

    `session` se puede inyectar (tests); si no, se crea perezosamente una
    requests.Session compartida entre threads.
    """

    def __init__(
        self,
        *,
        access_token: str | None = TMDB_ACCESS_TOKEN,
        base_url: str = TMDB_BASE_URL,
        timeout_seconds: float = TMDB_HTTP_TIMEOUT_SECONDS,
        max_concurrency: int = TMDB_HTTP_MAX_CONCURRENCY,
        session: requests.Session | None = None,
    ) -> None:
        self._access_token = (access_token or "").strip() or None
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(0.5, float(timeout_seconds))
        self._pool_size = max(1, int(max_concurrency))
        self._semaphore = threading.BoundedSemaphore(self._pool_size)
        self._session = session
        self._session_lock = threading.Lock()
        self._missing_token_warned = False

    def _get_session(self) -> requests.Session:
        if self._session is not None:
            return self._session
        with self._session_lock:
            if self._session is None:
                self._session = _build_session(
                    pool_size=self._pool_size,
                    retry_total=TMDB_HTTP_RETRY_TOTAL,
                    backoff_factor=TMDB_HTTP_RETRY_BACKOFF_FACTOR,
                )
            return self._session

    def _headers(self) -> dict[str, str]:
        if self._access_token is None and not self._missing_token_warned:
            self._missing_token_warned = True
            logger.warning("TMDB_ACCESS_TOKEN environment variable is not set!", always=True)
        return {
            "accept": "application/json",
            "Authorization": f"Bearer {self._access_token or ''}",
        }

    def _get_json(self, path: str, params: Mapping[str, object]) -> dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"

        if not self._semaphore.acquire(timeout=TMDB_HTTP_SEMAPHORE_ACQUIRE_TIMEOUT):
            raise UpstreamError(None, f"concurrency limit: semaphore acquire timeout for {path}")
        try:
            logger.debug_ctx("TMDB", f"GET {path} params={dict(params)}")
            resp = self._get_session().get(
                url,
                params=dict(params),
                headers=self._headers(),
                timeout=self._timeout_seconds,
            )
        except RequestException as exc:
            logger.error(f"TMDb API error calling {path}: {exc!r}")
            raise UpstreamError(None, repr(exc)) from exc
        finally:
            self._semaphore.release()

        status = int(resp.status_code)
        if not (200 <= status < 300):
            logger.error(f"TMDb API error: Code {status}, Body: {logger.truncate_line(str(resp.text))}")
            raise UpstreamError(status)

        try:
            data = resp.json()
        except ValueError as exc:
            logger.error(f"TMDb API returned invalid JSON for {path}: {exc!r}")
            raise UpstreamError(status, "invalid JSON body") from exc

        if not isinstance(data, dict):
            raise UpstreamError(status, f"unexpected body type: {type(data).__name__}")
        return data

    # ------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------

    def discover(self, media_kind: MediaKind, params: Mapping[str, object]) -> dict[str, Any]:
        """Respuesta cruda de /discover/{movie|tv}."""
        return self._get_json(f"discover/{media_kind.value}", params)

    def search(self, req: NormalizedSearchRequest) -> SearchResult:
        validate_sort_token(req.media_kind, req.sort_token)

        data = self.discover(req.media_kind, build_query_params(req))

        raw_results = data.get("results") or []
        if not isinstance(raw_results, list):
            raw_results = []

        items = [normalize_item(r, req.media_kind) for r in raw_results if isinstance(r, Mapping)]
        total_pages = max(0, min(_int_or(data.get("total_pages"), 1), TMDB_MAX_PAGE))
        total_results = _int_or(data.get("total_results"), 0)

        return SearchResult(items=items, total_pages=total_pages, total_results=total_results)

    def fetch_genres(self, media_kind: MediaKind) -> list[dict[str, Any]]:
        """[{id, name}] de /genre/{movie|tv}/list."""
        data = self._get_json(f"genre/{media_kind.value}/list", {"language": TMDB_GENRES_LANGUAGE})
        genres = data.get("genres") or []
        out: list[dict[str, Any]] = []
        for g in genres if isinstance(genres, list) else []:
            if not isinstance(g, Mapping) or g.get("id") is None:
                continue
            out.append({"id": g.get("id"), "name": g.get("name")})
        return out
