"""STRATA — Historical Store Engine & Session Factory."""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine
from strata.config import settings
from strata.core.logging import get_logger

# Registers the historical tables on SQLModel.metadata
import strata.models.historical_models  # noqa: F401

logger = get_logger("database")


def build_engine(url: str) -> Engine:
    """Engine for SQLite (file or in-memory) or PostgreSQL.

    Store reads run in worker threads, so SQLite connections must be
    shareable across threads; an in-memory database also needs a single
    pooled connection or every checkout would see an empty database.
    """
    parsed = make_url(url)
    backend = parsed.get_backend_name()
    logger.info(
        f"Historical store backend: {backend} "
        f"({parsed.render_as_string(hide_password=True)})"
    )

    if backend != "sqlite":
        return create_engine(
            url, pool_pre_ping=True, pool_size=5, max_overflow=10, pool_recycle=300
        )

    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if parsed.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = build_engine(settings.effective_database_url)


def check_connection(bind: Optional[Engine] = None) -> bool:
    """SELECT 1 against the store; False (logged) when it is unreachable."""
    bind = bind or engine
    try:
        with bind.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Historical store unreachable: {e}", extra={"source": "historical"})
        return False
    logger.info("Historical store reachable", extra={"source": "historical"})
    return True


def init_db(bind: Optional[Engine] = None) -> None:
    """Create any missing historical tables."""
    SQLModel.metadata.create_all(bind or engine)
    logger.info("Historical store tables ready", extra={"source": "historical"})


def get_session():
    """Dependency: yields a DB session."""
    with Session(engine) as session:
        yield session
