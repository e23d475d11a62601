"""
Database connection and session management for the identity service
"""
import logging

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """Create an engine, enabling cross-thread use for SQLite."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """
    Create all tables for the identity service.
    Should be called on application startup.
    """
    from .models import Account, AuthEvent  # noqa: F401  Import here to avoid circular dependency

    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    tables = inspect(engine).get_table_names()
    logger.info("Database initialized successfully: tables=%s", sorted(tables))