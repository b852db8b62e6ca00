from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from backend.db import build_engine, build_session_factory, init_db
from backend.errors import UpstreamError
from backend.search_params import MediaKind, NormalizedSearchRequest
from backend.tmdb_client import SearchResult, normalize_item


@pytest.fixture()
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{(tmp_path / 'cache.db').as_posix()}", echo=False)
    init_db(engine)
    yield build_session_factory(engine)
    engine.dispose()


class FrozenClock:
    """Reloj manipulable para tests de frescura."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


def raw_movie(tmdb_id: int, title: str = "Movie", genre_ids: list[int] | None = None) -> dict[str, Any]:
    return {
        "id": tmdb_id,
        "title": title,
        "release_date": "2020-05-01",
        "overview": "Overview",
        "poster_path": f"/p{tmdb_id}.jpg",
        "popularity": 10.5,
        "vote_average": 7.2,
        "vote_count": 100,
        "original_language": "en",
        "adult": False,
        "genre_ids": genre_ids if genre_ids is not None else [28],
    }


@dataclass
class FakeTmdbClient:
    """
    Sustituto de TmdbClient: devuelve resultados programados y registra llamadas.

    `results` recibe el NormalizedSearchRequest y devuelve la lista cruda de TMDb.
    """

    results: Callable[[NormalizedSearchRequest], list[dict[str, Any]]] = lambda req: [raw_movie(1)]
    total_pages: int = 3
    total_results: int = 60
    genres: dict[MediaKind, list[dict[str, Any]]] = field(default_factory=dict)
    fail_status: int | None = None
    search_calls: list[NormalizedSearchRequest] = field(default_factory=list)
    genre_calls: list[MediaKind] = field(default_factory=list)

    def search(self, req: NormalizedSearchRequest) -> SearchResult:
        self.search_calls.append(req)
        if self.fail_status is not None:
            raise UpstreamError(self.fail_status)
        items = [normalize_item(r, req.media_kind) for r in self.results(req)]
        return SearchResult(items=items, total_pages=self.total_pages, total_results=self.total_results)

    def fetch_genres(self, media_kind: MediaKind) -> list[dict[str, Any]]:
        self.genre_calls.append(media_kind)
        if self.fail_status is not None:
            raise UpstreamError(self.fail_status)
        return list(self.genres.get(media_kind, []))


@pytest.fixture()
def fake_client() -> FakeTmdbClient:
    return FakeTmdbClient()
