"""Database engine builder (SSOT).

- Default: NullPool (client-side pooling disabled; Supabase pooler does it)
- DB_POOL=queuepool opts back into SQLAlchemy's QueuePool
- sqlite in-memory URLs get StaticPool + check_same_thread=False (tests/dev)
- Supabase hosts get sslmode=require unless the URL already sets sslmode
"""

import logging
import os
import re
from typing import Any
from urllib.parse import urlparse

from sqlalchemy import Engine, NullPool, QueuePool, StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

_SUPABASE_HOST_SUFFIXES = (".supabase.co", ".supabase.com")


def is_supabase_host(url: str) -> bool:
    """Return True when the database URL points at a Supabase-managed host."""
    hostname = (urlparse(url).hostname or "").lower()
    return hostname.endswith(_SUPABASE_HOST_SUFFIXES)


def mask_password(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


def build_engine(database_url: str, **kwargs: Any) -> Engine:
    """Build a SQLAlchemy engine with the project pooling/SSL policy.

    Args:
        database_url: SQLAlchemy URL
        **kwargs: Extra create_engine() arguments (override policy defaults)

    Returns:
        Engine
    """
    engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
    connect_args: dict[str, Any] = {}

    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        engine_kwargs.pop("pool_pre_ping")
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            engine_kwargs["poolclass"] = StaticPool
    else:
        pool_mode = os.getenv("DB_POOL", "nullpool").lower()
        if pool_mode == "queuepool":
            engine_kwargs["poolclass"] = QueuePool
            engine_kwargs["pool_size"] = int(os.getenv("DB_POOL_SIZE", "5"))
            engine_kwargs["max_overflow"] = int(os.getenv("DB_MAX_OVERFLOW", "5"))
        else:
            engine_kwargs["poolclass"] = NullPool

        if is_supabase_host(database_url) and "sslmode=" not in database_url:
            connect_args["sslmode"] = "require"

    if connect_args:
        engine_kwargs["connect_args"] = connect_args
    engine_kwargs.update(kwargs)

    logger.info(
        "Database engine created",
        extra={
            "event": "db.engine.created",
            "database_url": mask_password(database_url),
            "poolclass": getattr(engine_kwargs.get("poolclass"), "__name__", "default"),
        },
    )
    return create_engine(database_url, **engine_kwargs)


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """Session factory bound to ``engine`` (no autoflush, no expire on commit)."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
