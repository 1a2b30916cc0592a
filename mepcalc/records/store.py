"""
Record Store

Engine and session factory for the calculation record table. One session
per manager operation; nothing is held between calls.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import Settings, load_settings
from .models import Base

logger = logging.getLogger(__name__)


def make_engine(settings: Optional[Settings] = None) -> Engine:
    """Create the SQLAlchemy engine for the configured database URL."""
    settings = settings or load_settings()
    url = settings.database_url
    kwargs = {"echo": settings.echo_sql}
    if url == "sqlite://" or (url.startswith("sqlite") and ":memory:" in url):
        # Share the single in-memory database across sessions
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = StaticPool
    logger.debug(f"Connecting to {url}")
    return create_engine(url, **kwargs)


def init_db(engine: Engine) -> None:
    """Create the record table if it does not exist."""
    Base.metadata.create_all(engine)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)
