# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""SQLAlchemy engine factory."""
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from rollcall.core.config import settings


def build_engine(url: str | None = None) -> Engine:
    """Create an engine for *url* (defaults to DATABASE_URL)."""
    url_obj = make_url(url or settings.DATABASE_URL)
    if url_obj.get_backend_name() != "sqlite":
        return create_engine(
            url_obj,
            pool_pre_ping=settings.POOL_PRE_PING,
            pool_recycle=settings.POOL_RECYCLE,
        )

    if url_obj.database in (None, "", ":memory:"):
        # One shared connection, reachable from the worker threads repositories use.
        return create_engine(
            url_obj,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    os.makedirs(os.path.dirname(os.path.abspath(url_obj.database)), exist_ok=True)
    return create_engine(
        url_obj,
        pool_pre_ping=settings.POOL_PRE_PING,
        pool_recycle=settings.POOL_RECYCLE,
        connect_args={"check_same_thread": False},
    )
