from __future__ import annotations

"""
backend/result_cache.py

Store persistente fingerprint -> resultado de búsqueda (tabla query_result_caches).

🧠 Principios
-------------
1) Una fila lógica por fingerprint:
   - La UNIQUE de query_key es la única primitiva de sincronización.
   - get_or_create: lee; si no existe inserta con "insert-if-absent"
     (ON CONFLICT DO NOTHING en SQLite/PostgreSQL; IntegrityError capturado en
     otros dialectos) y vuelve a leer. Si otro worker ganó la carrera, el caller
     recibe SU fila. Nunca se propaga como error.

2) Frescura con dos horizontes:
   - consulta con filtros (fecha/género/rating) => CACHE_FILTERED_MAX_AGE_SECONDS (24h)
   - consulta "ancha" (solo tipo/orden/página)  => CACHE_BROAD_MAX_AGE_SECONDS (1h)
   - last_queried_at NULL => siempre stale.

3) Reload-then-write:
   - write() relee la fila por fingerprint dentro de la transacción y actualiza
     payload + paginación + timestamp de una vez. Nunca se escribe desde una
     copia en memoria posiblemente obsoleta.

4) Payload corrupto => lista vacía (se loguea, no se propaga).

Las filas no se borran: la expiración es lógica (is_stale), no física.
"""

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from backend import logger as logger
from backend.config_cache import (
    CACHE_BROAD_MAX_AGE_SECONDS,
    CACHE_FILTERED_MAX_AGE_SECONDS,
    CACHE_MAX_STORED_PAGE,
    CACHE_MAX_TOTAL_PAGES,
)
from backend.models import QueryResultCache, utcnow
from backend.search_params import NormalizedSearchRequest
from backend.tmdb_client import NormalizedItem


@dataclass(frozen=True)
class CacheEntry:
    """
    Snapshot inmutable de una fila de query_result_caches.

    payload es el blob serializado tal cual está en BD (opaco hasta read_payload).
    """

    id: int
    fingerprint: str
    page: int
    payload: str | None
    total_pages: int | None
    total_result_count: int | None
    last_refreshed_at: datetime | None


def _as_utc(dt: datetime) -> datetime:
    # SQLite devuelve datetimes naive aunque la columna sea timezone=True
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def _to_entry(row: QueryResultCache) -> CacheEntry:
    return CacheEntry(
        id=row.id,
        fingerprint=row.query_key,
        page=row.page,
        payload=row.results,
        total_pages=row.total_pages,
        total_result_count=row.total_results,
        last_refreshed_at=_as_utc(row.last_queried_at) if row.last_queried_at is not None else None,
    )


def cap_total_pages(value: object) -> int:
    try:
        n = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 0
    return max(0, min(n, CACHE_MAX_TOTAL_PAGES))


class ResultCacheStore:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        broad_max_age_seconds: int = CACHE_BROAD_MAX_AGE_SECONDS,
        filtered_max_age_seconds: int = CACHE_FILTERED_MAX_AGE_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._broad_max_age = timedelta(seconds=max(1, int(broad_max_age_seconds)))
        self._filtered_max_age = timedelta(seconds=max(1, int(filtered_max_age_seconds)))
        self._clock = clock

    # ------------------------------------------------------------------
    # Lectura / creación
    # ------------------------------------------------------------------

    def find(self, fingerprint: str) -> CacheEntry | None:
        with self._session_factory() as session:
            row = session.scalars(
                select(QueryResultCache).where(QueryResultCache.query_key == fingerprint)
            ).one_or_none()
            return None if row is None else _to_entry(row)

    def get_or_create(self, fingerprint: str, initial_page: int) -> CacheEntry:
        """
        Devuelve la fila de `fingerprint`, creándola vacía si no existe.

        Dos workers con el mismo fingerprint pueden llegar aquí a la vez. Solo uno
        inserta; el otro ve 0 filas afectadas (o IntegrityError) y relee la fila
        ya existente. Ambos obtienen la misma identidad (mismo id).
        """
        existing = self.find(fingerprint)
        if existing is not None:
            return existing

        with self._session_factory() as session:
            page = min(max(1, int(initial_page)), CACHE_MAX_STORED_PAGE)
            inserted = self._insert_if_absent(session, fingerprint, page)
            session.commit()

        if not inserted:
            logger.debug_ctx("CACHE", f"insert race on {fingerprint[:12]}…; re-reading existing row")

        entry = self.find(fingerprint)
        if entry is None:
            raise RuntimeError(f"query_result_caches row vanished after insert: {fingerprint}")
        return entry

    def _insert_if_absent(self, session: Session, fingerprint: str, page: int) -> bool:
        now = self._clock()
        values = {
            "query_key": fingerprint,
            "page": page,
            "results": None,
            "last_queried_at": None,
            "created_at": now,
            "updated_at": now,
        }

        dialect = session.get_bind().dialect.name
        if dialect == "sqlite":
            stmt = sqlite_insert(QueryResultCache).values(**values).on_conflict_do_nothing(
                index_elements=["query_key"]
            )
            return bool(session.execute(stmt).rowcount)
        if dialect == "postgresql":
            pg_stmt = pg_insert(QueryResultCache).values(**values).on_conflict_do_nothing(
                index_elements=["query_key"]
            )
            return bool(session.execute(pg_stmt).rowcount)

        try:
            with session.begin_nested():
                session.execute(insert(QueryResultCache).values(**values))
            return True
        except IntegrityError:
            return False

    # ------------------------------------------------------------------
    # Frescura
    # ------------------------------------------------------------------

    def horizon_for(self, req: NormalizedSearchRequest) -> timedelta:
        return self._filtered_max_age if req.has_filters else self._broad_max_age

    def is_stale(self, entry: CacheEntry, req: NormalizedSearchRequest, *, now: datetime | None = None) -> bool:
        if entry.last_refreshed_at is None:
            return True
        current = _as_utc(now) if now is not None else self._clock()
        age = current - _as_utc(entry.last_refreshed_at)
        return age > self.horizon_for(req)

    # ------------------------------------------------------------------
    # Escritura / payload
    # ------------------------------------------------------------------

    def write(
        self,
        entry: CacheEntry,
        items: Sequence[NormalizedItem],
        total_pages: object,
        total_result_count: object,
    ) -> CacheEntry:
        """
        Sustituye payload + paginación y marca last_queried_at=now.

        Relee la fila por fingerprint en la misma transacción: todos los campos se
        actualizan juntos o ninguno.
        """
        body = json.dumps(list(items), ensure_ascii=False)
        try:
            total_results = max(0, int(total_result_count))  # type: ignore[call-overload]
        except (TypeError, ValueError):
            total_results = 0

        now = self._clock()
        with self._session_factory() as session, session.begin():
            row = session.scalars(
                select(QueryResultCache).where(QueryResultCache.query_key == entry.fingerprint)
            ).one_or_none()
            if row is None:
                raise LookupError(f"query_result_caches row not found: {entry.fingerprint}")

            row.results = body
            row.total_pages = cap_total_pages(total_pages)
            row.total_results = total_results
            row.last_queried_at = now
            row.updated_at = now
            session.flush()
            refreshed = _to_entry(row)

        logger.debug_ctx(
            "CACHE",
            f"stored {len(items)} items for {entry.fingerprint[:12]}… (pages={refreshed.total_pages})",
        )
        return refreshed

    @staticmethod
    def read_payload(entry: CacheEntry) -> list[NormalizedItem]:
        raw = entry.payload
        if raw is None or not raw.strip():
            return []
        try:
            parsed = json.loads(raw)
        except ValueError as exc:
            logger.error(f"Error parsing cached results for {entry.fingerprint[:12]}…: {exc!r}")
            return []
        if not isinstance(parsed, list):
            logger.warning(
                f"Cached results for {entry.fingerprint[:12]}… are {type(parsed).__name__}, expected list",
                always=True,
            )
            return []
        return [item for item in parsed if isinstance(item, dict)]
