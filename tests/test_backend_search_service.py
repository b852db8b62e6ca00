from datetime import timedelta

import pytest
from sqlalchemy import update

from backend.cache_key import fingerprint
from backend.errors import InvalidMediaKind, InvalidSortToken, UpstreamError
from backend.models import QueryResultCache
from backend.result_cache import ResultCacheStore
from backend.search_params import normalize
from backend.search_service import SearchService
from tests.conftest import raw_movie


def _service(session_factory, client, clock) -> tuple[SearchService, ResultCacheStore]:
    store = ResultCacheStore(
        session_factory,
        broad_max_age_seconds=3600,
        filtered_max_age_seconds=86400,
        clock=clock,
    )
    return SearchService(store=store, client=client), store


def test_miss_then_hit(session_factory, fake_client, clock):
    service, _ = _service(session_factory, fake_client, clock)
    raw = {"media_type": "movie", "genre_ids": "28"}

    first = service.search(raw)
    assert first.cached is False
    assert first.query_key == fingerprint(normalize(raw))
    assert [i["id"] for i in first.items] == [1]
    assert first.total_pages == 3
    assert first.total_results == 60
    assert first.last_updated == clock.now

    clock.now = clock.now + timedelta(hours=2)
    second = service.search(raw)
    assert second.cached is True
    assert second.items == first.items
    assert second.last_updated == first.last_updated
    assert len(fake_client.search_calls) == 1


def test_broad_query_refreshes_after_an_hour(session_factory, fake_client, clock):
    service, _ = _service(session_factory, fake_client, clock)
    raw = {"media_type": "tv"}

    service.search(raw)
    clock.now = clock.now + timedelta(minutes=59)
    assert service.search(raw).cached is True

    clock.now = clock.now + timedelta(minutes=2)
    refreshed = service.search(raw)
    assert refreshed.cached is False
    assert refreshed.last_updated == clock.now
    assert len(fake_client.search_calls) == 2


def test_empty_upstream_result_is_not_persisted(session_factory, fake_client, clock):
    fake_client.results = lambda req: []
    fake_client.total_pages = 0
    fake_client.total_results = 0
    service, store = _service(session_factory, fake_client, clock)
    raw = {"media_type": "movie", "min_rating": "9.9"}

    outcome = service.search(raw)
    assert outcome.cached is False
    assert outcome.items == []
    assert outcome.last_updated is None

    entry = store.find(outcome.query_key)
    assert entry is not None
    assert entry.payload is None
    assert entry.last_refreshed_at is None

    # sin payload: se vuelve a preguntar a TMDb
    service.search(raw)
    assert len(fake_client.search_calls) == 2


def test_upstream_error_propagates_and_keeps_previous_payload(session_factory, fake_client, clock):
    service, store = _service(session_factory, fake_client, clock)
    raw = {"media_type": "movie"}
    first = service.search(raw)

    clock.now = clock.now + timedelta(hours=3)
    fake_client.fail_status = 503
    with pytest.raises(UpstreamError):
        service.search(raw)

    entry = store.find(first.query_key)
    assert entry is not None
    assert [i["id"] for i in store.read_payload(entry)] == [1]
    assert entry.last_refreshed_at == first.last_updated


def test_validation_errors_have_no_side_effects(session_factory, fake_client, clock):
    service, store = _service(session_factory, fake_client, clock)

    with pytest.raises(InvalidMediaKind):
        service.search({"media_type": "anime"})
    with pytest.raises(InvalidSortToken):
        service.search({"media_type": "tv", "sort_by": "revenue.desc"})

    assert fake_client.search_calls == []
    assert store.find(fingerprint(normalize({"media_type": "tv", "sort_by": "revenue.desc"}))) is None


def test_corrupt_payload_triggers_refetch(session_factory, fake_client, clock):
    service, _ = _service(session_factory, fake_client, clock)
    raw = {"media_type": "movie"}
    outcome = service.search(raw)

    with session_factory() as session:
        session.execute(
            update(QueryResultCache).where(QueryResultCache.query_key == outcome.query_key).values(results="{oops")
        )
        session.commit()

    again = service.search(raw)
    assert again.cached is False
    assert [i["id"] for i in again.items] == [1]
    assert len(fake_client.search_calls) == 2


def test_oversized_page_is_clamped_only_upstream(session_factory, fake_client, clock):
    service, _ = _service(session_factory, fake_client, clock)
    a = service.search({"media_type": "movie", "page": "600"})
    b = service.search({"media_type": "movie", "page": "700"})

    # distintas claves de caché aunque TMDb reciba la misma página
    assert a.query_key != b.query_key
    assert a.page == 600
    assert [r.page for r in fake_client.search_calls] == [600, 700]


def test_huge_page_is_searchable_and_cached(session_factory, fake_client, clock):
    service, store = _service(session_factory, fake_client, clock)
    raw = {"media_type": "movie", "page": "9" * 20}

    first = service.search(raw)
    assert first.cached is False
    assert first.page == 2**31 - 1

    again = service.search(raw)
    assert again.cached is True
    assert again.query_key == first.query_key
    assert store.find(first.query_key) is not None


def test_empty_refresh_keeps_populated_row(session_factory, fake_client, clock):
    service, store = _service(session_factory, fake_client, clock)
    raw = {"media_type": "tv"}
    first = service.search(raw)

    clock.now = clock.now + timedelta(hours=2)
    fake_client.results = lambda req: []
    outcome = service.search(raw)

    assert outcome.cached is False
    assert outcome.items == []
    entry = store.find(first.query_key)
    assert entry is not None
    assert [i["id"] for i in store.read_payload(entry)] == [1]
    assert entry.last_refreshed_at == first.last_updated
    assert entry.total_pages == 3


def test_date_range_movie_search_end_to_end(session_factory, fake_client, clock):
    fake_client.results = lambda req: [raw_movie(101, "Test Movie")]
    service, _ = _service(session_factory, fake_client, clock)
    raw = {"media_type": "movie", "start_date": "2020-01-01", "end_date": "2020-12-31"}

    first = service.search(raw)
    assert first.cached is False
    assert [i["title"] for i in first.items] == ["Test Movie"]

    clock.now = clock.now + timedelta(hours=23)
    second = service.search(raw)
    assert second.cached is True
    assert second.items == first.items
    assert len(fake_client.search_calls) == 1
    assert fake_client.search_calls[0].start_date == "2020-01-01"
    assert fake_client.search_calls[0].end_date == "2020-12-31"
