"""
Modelos persistentes.

query_result_caches:
  una fila por fingerprint (query_key UNIQUE). results es JSON serializado
  (lista de NormalizedItem). last_queried_at NULL => nunca poblada.

genres:
  catálogo local de géneros TMDb, único por (tmdb_id, media_type).
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backend.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueryResultCache(Base):
    __tablename__ = "query_result_caches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    query_key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    page: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    results: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_queried_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_pages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_results: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (Index("ix_query_result_caches_last_queried_at", "last_queried_at"),)

    def __repr__(self) -> str:
        return f"<QueryResultCache(query_key={self.query_key!r}, page={self.page})>"


class Genre(Base):
    __tablename__ = "genres"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tmdb_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    media_type: Mapped[str] = mapped_column(String(8), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("tmdb_id", "media_type", name="uq_genres_tmdb_id_media_type"),)

    def __repr__(self) -> str:
        return f"<Genre(tmdb_id={self.tmdb_id}, media_type={self.media_type!r}, name={self.name!r})>"
