"""
Database engine and session factory.

The engine is created lazily from ``settings.database_url`` so tests and
scripts can point the service at another database before first use.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from ..config import settings
from .models import Base


def create_db_engine(database_url: str, **kwargs: Any) -> Engine:
    """Create an engine; SQLite gets thread-safe connect args and its directory created."""
    url = make_url(database_url)
    options: Dict[str, Any] = {"pool_pre_ping": True, "future": True}

    if url.get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    else:
        options.update(pool_size=5, max_overflow=10, pool_recycle=1800)

    options.update(kwargs)
    return create_engine(database_url, **options)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine(settings.database_url)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return create_session_factory(get_engine())


def init_schema(engine: Engine) -> None:
    """Create missing tables; existing tables are left untouched."""
    Base.metadata.create_all(bind=engine)


__all__ = [
    "create_db_engine",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "init_schema",
]
