# catálogo local de géneros TMDb: sync bajo demanda + lookup para serializar
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from backend import logger as logger
from backend.models import Genre, utcnow
from backend.search_params import MediaKind
from backend.tmdb_client import TmdbClient


@dataclass(frozen=True)
class GenreRecord:
    id: int
    tmdb_id: int
    name: str
    media_type: str

    def as_dict(self) -> dict[str, object]:
        return {"id": self.id, "tmdb_id": self.tmdb_id, "name": self.name, "media_type": self.media_type}


def _to_record(row: Genre) -> GenreRecord:
    return GenreRecord(id=row.id, tmdb_id=row.tmdb_id, name=row.name, media_type=row.media_type)


class GenreCatalog:
    def __init__(self, *, session_factory: sessionmaker[Session], client: TmdbClient) -> None:
        self._session_factory = session_factory
        self._client = client

    def sync(self, media_kind: MediaKind) -> int:
        """
        Trae los géneros de TMDb y crea los (tmdb_id, tipo) que falten.
        Los existentes no se tocan. UpstreamError se propaga.
        """
        fetched = self._client.fetch_genres(media_kind)
        created = 0
        for g in fetched:
            try:
                tmdb_id = int(g["id"])
            except (TypeError, ValueError):
                continue
            name = str(g.get("name") or "").strip()
            if not name:
                continue
            if self._create_if_missing(tmdb_id, media_kind, name):
                created += 1

        logger.info(f"Synced {media_kind.value} genres from TMDb: fetched={len(fetched)} created={created}")
        return len(fetched)

    def _create_if_missing(self, tmdb_id: int, media_kind: MediaKind, name: str) -> bool:
        with self._session_factory() as session:
            exists = session.scalars(
                select(Genre.id).where(Genre.tmdb_id == tmdb_id, Genre.media_type == media_kind.value)
            ).first()
            if exists is not None:
                return False
            now = utcnow()
            session.add(Genre(tmdb_id=tmdb_id, media_type=media_kind.value, name=name, created_at=now, updated_at=now))
            try:
                session.commit()
            except IntegrityError:
                # otro worker lo creó entre la lectura y el insert
                session.rollback()
                return False
            return True

    def list_genres(self, media_kind: MediaKind) -> list[GenreRecord]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(Genre).where(Genre.media_type == media_kind.value).order_by(Genre.name, Genre.tmdb_id)
            ).all()
            return [_to_record(r) for r in rows]

    def lookup(self, pairs: Iterable[tuple[int, str]]) -> dict[tuple[int, str], GenreRecord]:
        ids_by_kind: dict[str, set[int]] = {}
        for tmdb_id, kind in pairs:
            ids_by_kind.setdefault(str(kind), set()).add(int(tmdb_id))

        out: dict[tuple[int, str], GenreRecord] = {}
        if not ids_by_kind:
            return out
        with self._session_factory() as session:
            for kind, ids in ids_by_kind.items():
                rows = session.scalars(
                    select(Genre).where(Genre.media_type == kind, Genre.tmdb_id.in_(sorted(ids)))
                ).all()
                for r in rows:
                    out[(r.tmdb_id, r.media_type)] = _to_record(r)
        return out
