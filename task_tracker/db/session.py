"""Database engine, session factory, and schema bootstrap helpers."""

import logging
from pathlib import Path
from typing import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings
from ..models import task  # noqa: F401  registers the tasks table on Base.metadata
from .base import Base

logger = logging.getLogger(__name__)


def create_db_engine(settings: Settings) -> Engine:
    """Create the SQLAlchemy engine for the configured database.

    Args:
        settings: Application settings

    Returns:
        Configured engine
    """
    url = make_url(settings.database_url)
    connect_args = {}

    if url.get_backend_name() == "sqlite":
        # FastAPI runs sync dependencies in a threadpool.
        connect_args["check_same_thread"] = False

    engine = create_engine(
        url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    logger.info(f"Database engine created for {url.render_as_string(hide_password=True)}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the engine."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create the tasks schema if it does not exist yet."""
    url = engine.url
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    Base.metadata.create_all(engine)
    logger.info("Database schema ready")


def check_database(engine: Engine) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


def get_session(request: Request) -> Generator[Session, None, None]:
    """Yield a request-scoped session, rolling back anything left uncommitted."""
    session: Session = request.app.state.session_factory()
    try:
        yield session
    finally:
        if session.in_transaction():
            try:
                session.rollback()
            except SQLAlchemyError:
                logger.exception("Failed to rollback session after request")
        session.close()
