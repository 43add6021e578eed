import os

# Must be set before app modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SWEEPER_ENABLED", "false")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.db import get_db, init_db  # noqa: E402
from app.core.settings import config_settings  # noqa: E402
from app.main import app  # noqa: E402
from app.repositories.sql_gateway import SqlStorageGateway  # noqa: E402
from fakes import FakeClock  # noqa: E402

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 15, 12, 0, 0))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(db_session) -> SqlStorageGateway:
    return SqlStorageGateway(db_session)


@pytest.fixture
def client(session_factory, tmp_path, monkeypatch):
    monkeypatch.setattr(config_settings, "REPORTS_DIR", str(tmp_path / "reports"))
    monkeypatch.setattr(config_settings, "PUBLIC_BASE_URL", "http://testserver")

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)
