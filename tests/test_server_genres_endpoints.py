import pytest

pytest.importorskip("httpx")

from fastapi.testclient import TestClient

import server.api.deps as deps
from backend.genre_catalog import GenreCatalog
from backend.search_params import MediaKind
from server.api.app import create_app


@pytest.fixture()
def api(session_factory, fake_client):
    fake_client.genres = {
        MediaKind.MOVIE: [{"id": 35, "name": "Comedy"}, {"id": 28, "name": "Action"}],
        MediaKind.TV: [{"id": 18, "name": "Drama"}],
    }
    catalog = GenreCatalog(session_factory=session_factory, client=fake_client)
    app = create_app()
    app.dependency_overrides[deps.get_genre_catalog] = lambda: catalog
    return TestClient(app)


def test_sync_then_list(api):
    res = api.post("/api/v1/genres/sync", json={"media_type": "movie"})
    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Genres synced successfully"}

    listing = api.get("/api/v1/genres", params={"media_type": "movie"})
    assert listing.status_code == 200
    assert [g["name"] for g in listing.json()] == ["Action", "Comedy"]
    assert all(g["media_type"] == "movie" for g in listing.json())

    assert api.get("/api/v1/genres", params={"media_type": "tv"}).json() == []


def test_sync_accepts_query_and_nested_body(api):
    assert api.post("/api/v1/genres/sync", params={"media_type": "tv"}).status_code == 200
    assert api.post("/api/v1/genres/sync", json={"genre": {"media_type": "tv"}}).status_code == 200
    assert [g["tmdb_id"] for g in api.get("/api/v1/genres", params={"media_type": "tv"}).json()] == [18]


def test_sync_upstream_failure_is_422(api, fake_client):
    fake_client.fail_status = 401
    res = api.post("/api/v1/genres/sync", json={"media_type": "movie"})
    assert res.status_code == 422
    assert res.json() == {"error": "TMDb API error: 401"}


@pytest.mark.parametrize("media_type", [None, "anime"])
def test_invalid_media_type(api, media_type):
    params = {} if media_type is None else {"media_type": media_type}
    assert api.get("/api/v1/genres", params=params).status_code == 422
    assert api.post("/api/v1/genres/sync", params=params).status_code == 422
