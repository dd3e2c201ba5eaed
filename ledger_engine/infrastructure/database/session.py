"""Database engine and session factory for the ledger tables"""

from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from ledger_engine.config import settings
from ledger_engine.infrastructure.database.models import Base


def build_engine(url: str) -> Engine:
    """
    Create an engine for the given URL.

    PostgreSQL gets a bounded pool (max 20 connections, recycled hourly);
    SQLite, used for local runs and tests, is shared across threads.
    """
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    """Create any missing ledger tables"""
    Base.metadata.create_all(bind=bind)


def drop_db(bind: Engine = engine) -> None:
    Base.metadata.drop_all(bind=bind)


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
