"""
Database configuration and session management.

This module sets up the SQLAlchemy engine and session factory. PostgreSQL
is the production target; SQLite is supported for development and tests.
"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

# Handle both package imports (FastAPI) and standalone imports
try:
    from .config import get_settings
except ImportError:
    from config import get_settings

settings = get_settings()
DATABASE_URL = settings.database_url

# - pool_pre_ping: Verify connections are alive before using them
# - pool_size / max_overflow only apply to server databases
if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=settings.sql_debug,
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        echo=settings.sql_debug,
    )

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Base class for declarative models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped database session.

    Routers commit explicitly; the session is always closed afterwards.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create the documents, recipients and signatures tables if missing."""
    # Import models to ensure they are registered with Base
    from . import models_db  # noqa: F401

    Base.metadata.create_all(bind=engine)
