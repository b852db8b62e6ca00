# singletons perezosos: engine/sessionmaker, cliente TMDb, servicios
from __future__ import annotations

import threading

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from backend.db import build_engine, build_session_factory, init_db
from backend.genre_catalog import GenreCatalog
from backend.result_cache import ResultCacheStore
from backend.search_service import SearchService
from backend.tmdb_client import TmdbClient
from server.api.settings import Settings

_SETTINGS = Settings.from_env()

_LOCK = threading.Lock()
_ENGINE: Engine | None = None
_SESSION_FACTORY: sessionmaker[Session] | None = None
_CLIENT: TmdbClient | None = None
_SEARCH_SERVICE: SearchService | None = None
_GENRE_CATALOG: GenreCatalog | None = None


def get_settings() -> Settings:
    return _SETTINGS


def get_session_factory() -> sessionmaker[Session]:
    global _ENGINE, _SESSION_FACTORY
    if _SESSION_FACTORY is not None:
        return _SESSION_FACTORY
    with _LOCK:
        if _SESSION_FACTORY is None:
            _ENGINE = build_engine(_SETTINGS.database_url, echo=_SETTINGS.sql_echo)
            init_db(_ENGINE)
            _SESSION_FACTORY = build_session_factory(_ENGINE)
        return _SESSION_FACTORY


def get_tmdb_client() -> TmdbClient:
    global _CLIENT
    if _CLIENT is None:
        with _LOCK:
            if _CLIENT is None:
                _CLIENT = TmdbClient()
    return _CLIENT


def get_search_service() -> SearchService:
    global _SEARCH_SERVICE
    if _SEARCH_SERVICE is None:
        store = ResultCacheStore(get_session_factory())
        client = get_tmdb_client()
        with _LOCK:
            if _SEARCH_SERVICE is None:
                _SEARCH_SERVICE = SearchService(store=store, client=client)
    return _SEARCH_SERVICE


def get_genre_catalog() -> GenreCatalog:
    global _GENRE_CATALOG
    if _GENRE_CATALOG is None:
        factory = get_session_factory()
        client = get_tmdb_client()
        with _LOCK:
            if _GENRE_CATALOG is None:
                _GENRE_CATALOG = GenreCatalog(session_factory=factory, client=client)
    return _GENRE_CATALOG
