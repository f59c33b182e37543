import os

# keep the app's own engine off disk; must happen before school_api is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORAGE_BACKEND", "sql")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from school_api.database import get_store
from school_api.main import app
from school_api.repositories import JsonFileStore, MemoryStore, SqlStore
from school_api.services import SchoolService


@pytest.fixture
def sql_engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def sql_store(sql_engine):
    with Session(sql_engine) as session:
        yield SqlStore(session)


@pytest.fixture
def json_store(tmp_path):
    return JsonFileStore(tmp_path / "data")


@pytest.fixture(params=["memory", "sql", "json"])
def store(request):
    """Run a test once per storage backend."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def service(store):
    return SchoolService(store)


@pytest.fixture
def client(memory_store):
    app.dependency_overrides[get_store] = lambda: memory_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def sql_client(sql_engine):
    def _store():
        with Session(sql_engine) as session:
            yield SqlStore(session)

    app.dependency_overrides[get_store] = _store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
