"""SQLAlchemy engine/session factory and the app-wide store dependency."""
from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings
from .store import DirectoryStore, InMemoryStore

Base = declarative_base()


def build_engine(url: str) -> Engine:
    """Create an engine; in-memory SQLite must share one connection across threads."""
    if url.startswith("sqlite") and ":memory:" in url:
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@lru_cache()
def get_store() -> DirectoryStore:
    """Process-wide store selected by STORE_BACKEND."""
    backend = settings.STORE_BACKEND.lower()
    if backend == "memory":
        return InMemoryStore()
    if backend == "sql":
        from .sql_store import SqlStore

        engine = build_engine(settings.DATABASE_URL)
        return SqlStore(engine, create_tables=True)
    raise RuntimeError(f"Unsupported STORE_BACKEND: {settings.STORE_BACKEND}")
