"""Database engine and storage helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` and provides the `get_store` dependency that
hands each request a `Store` for the configured backend. The SQL
backend opens one session per request; the JSON backend shares a
single file-backed store for the whole process.
"""

from functools import lru_cache
from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool
from .config import settings
from .repositories import JsonFileStore, SqlStore

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _engine_kwargs(url: str) -> dict:
    """SQLite needs cross-thread connections; in-memory URLs share one."""
    if not url.startswith("sqlite"):
        return {}
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in IN_MEMORY_URLS:
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(settings.DATABASE_URL, echo=False, **_engine_kwargs(settings.DATABASE_URL))


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    Intended for local development and tests; the tables are created
    only if they do not exist yet.
    """
    SQLModel.metadata.create_all(engine)


@lru_cache(maxsize=1)
def get_json_store() -> JsonFileStore:
    """Return the process-wide JSON store rooted at `settings.DATA_DIR`."""
    return JsonFileStore(settings.DATA_DIR)


def get_store():
    """Yield the `Store` for the configured storage backend."""
    if settings.STORAGE_BACKEND == "json":
        yield get_json_store()
        return
    with Session(engine) as session:
        yield SqlStore(session)
