import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.settings import config_settings
from app.models.orm.base import Base
from app.repositories.sql_gateway import SqlStorageGateway

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Create the engine; it owns the connection pool shared by requests and the sweeper."""
    return create_engine(
        database_url,
        pool_pre_ping=True,
        # Only needed for SQLite to handle concurrent requests
        connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {},
    )


engine = build_engine(config_settings.DATABASE_URL)

# Each request (and each sweeper tick) gets its own session, i.e. its own unit of work.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    """Create tables, constraints and indexes if they do not exist yet."""
    # Registers every mapped table on Base.metadata
    from app.models.orm import assignment, history, segment, user  # noqa: F401

    Base.metadata.create_all(bind=bind)
    logger.info("Database schema and indexes are in place")


def get_db():
    """
    Dependency that yields a database session for a single request,
    and ensures the session is closed afterward.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def storage_scope(session_factory: sessionmaker = SessionLocal) -> Iterator[SqlStorageGateway]:
    """Open a session for work done outside a request, such as a sweeper tick."""
    db = session_factory()
    try:
        yield SqlStorageGateway(db)
    finally:
        db.close()
