from __future__ import annotations

"""
backend/db.py

Engine + sessionmaker (SQLAlchemy 2.0).

- SQLite por defecto (DATABASE_URL en backend/config_cache.py); cualquier URL
  soportada por SQLAlchemy vale (PostgreSQL en producción).
- Cada operación del store abre su propia sesión corta: no se comparten
  sesiones entre threads.
"""

from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from backend import logger as logger
from backend.config_cache import DATABASE_URL, SQL_ECHO


class Base(DeclarativeBase):
    pass


def _ensure_sqlite_dir(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    database = parsed.database or ""
    if not database or database == ":memory:":
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def build_engine(url: str = DATABASE_URL, *, echo: bool = SQL_ECHO) -> Engine:
    _ensure_sqlite_dir(url)

    is_sqlite = make_url(url).get_backend_name() == "sqlite"
    connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}

    engine = create_engine(url, echo=echo, future=True, pool_pre_ping=True, connect_args=connect_args)

    if is_sqlite:

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_conn, _record) -> None:  # type: ignore[no-untyped-def]
            cur = dbapi_conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL")
                cur.execute("PRAGMA busy_timeout=30000")
            finally:
                cur.close()

    logger.debug_ctx("DB", f"engine ready: {make_url(url).render_as_string(hide_password=True)}")
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    # expire_on_commit=False: las entidades se leen tras cerrar la sesión
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Crea tablas si no existen (idempotente)."""
    from backend import models  # noqa: F401  (registra los modelos en Base.metadata)

    Base.metadata.create_all(engine)
