from __future__ import annotations

"""
backend/search_service.py

Orquestador write-through de búsquedas discover.

Por request:
  1) normalize (InvalidMediaKind) + vocabulario de sort (InvalidSortToken),
     antes de tocar caché o TMDb.
  2) fingerprint + get_or_create de la fila de caché.
  3) fila fresca y con payload => respuesta cacheada (cached=True).
  4) si no => TMDb:
       - 0 items: respuesta vacía SIN escribir (un vacío puede ser transitorio).
       - items: reload-then-write y respuesta fresca (cached=False).
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from backend import logger as logger
from backend.cache_key import fingerprint
from backend.errors import UpstreamError
from backend.result_cache import CacheEntry, ResultCacheStore, cap_total_pages
from backend.search_params import NormalizedSearchRequest, normalize
from backend.tmdb_client import NormalizedItem, SearchResult, TmdbClient, validate_sort_token


@dataclass(frozen=True)
class SearchOutcome:
    query_key: str
    cached: bool
    page: int
    total_pages: int
    total_results: int
    last_updated: datetime | None = None
    items: list[NormalizedItem] = field(default_factory=list)


class SearchService:
    def __init__(self, *, store: ResultCacheStore, client: TmdbClient) -> None:
        self._store = store
        self._client = client

    @staticmethod
    def prepare(raw: Mapping[str, Any]) -> NormalizedSearchRequest:
        """Validación sin efectos laterales: normaliza y comprueba el sort por tipo."""
        req = normalize(raw)
        validate_sort_token(req.media_kind, req.sort_token)
        return req

    def search(self, raw: Mapping[str, Any]) -> SearchOutcome:
        req = self.prepare(raw)
        query_key = fingerprint(req)
        entry = self._store.get_or_create(query_key, req.page)

        if not self._store.is_stale(entry, req):
            items = self._store.read_payload(entry)
            if items:
                logger.debug_ctx("SEARCH", f"cache hit {query_key[:12]}… ({len(items)} items)")
                return SearchOutcome(
                    query_key=query_key,
                    cached=True,
                    page=entry.page,
                    total_pages=cap_total_pages(entry.total_pages or 0),
                    total_results=int(entry.total_result_count or 0),
                    last_updated=entry.last_refreshed_at,
                    items=items,
                )

        return self._fetch_and_store(req, entry)

    def _fetch_and_store(self, req: NormalizedSearchRequest, entry: CacheEntry) -> SearchOutcome:
        try:
            result: SearchResult = self._client.search(req)
        except UpstreamError:
            logger.error(f"Upstream search failed for {entry.fingerprint[:12]}… ({req.media_kind.value})")
            raise

        if not result.items:
            logger.debug_ctx("SEARCH", f"upstream returned 0 items for {entry.fingerprint[:12]}…; not stored")
            return SearchOutcome(
                query_key=entry.fingerprint,
                cached=False,
                page=entry.page,
                total_pages=cap_total_pages(result.total_pages),
                total_results=result.total_results,
                last_updated=None,
                items=[],
            )

        try:
            refreshed = self._store.write(entry, result.items, result.total_pages, result.total_results)
        except Exception as exc:
            logger.error(f"Error storing results for {entry.fingerprint[:12]}…: {exc!r}")
            raise

        return SearchOutcome(
            query_key=entry.fingerprint,
            cached=False,
            page=refreshed.page,
            total_pages=cap_total_pages(result.total_pages),
            total_results=result.total_results,
            last_updated=refreshed.last_refreshed_at,
            items=list(result.items),
        )
