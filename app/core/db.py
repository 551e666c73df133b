"""Engine and session factory."""

from typing import Any, Dict

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.logging import get_logger
from app.models.base import Base

log = get_logger("db")


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite URLs get thread sharing and, for in-memory DBs, a single connection."""
    kwargs: Dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine | None = None) -> None:
    """Create all tables that do not exist yet."""
    target = bind or engine
    log.info(f"Ensuring tables exist on {target.url.render_as_string(hide_password=True)}")
    Base.metadata.create_all(bind=target)
