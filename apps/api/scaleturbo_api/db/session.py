"""Database session management.

The engine is built lazily from the injected Settings on first use, so
importing the app never opens a connection.
"""

from functools import lru_cache
from typing import Generator

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from scaleturbo_api.config.settings import get_settings
from scaleturbo_api.db.engine import build_engine, build_sessionmaker


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Process-wide engine for the configured DATABASE_URL."""
    return build_engine(get_settings().database_url)


@lru_cache(maxsize=1)
def get_sessionmaker() -> sessionmaker[Session]:
    return build_sessionmaker(get_engine())


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Session: SQLAlchemy session
    """
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
