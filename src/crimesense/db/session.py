"""
session.py
-----------
Creates the database engine and session factory for SQLAlchemy.
By default this is a SQLite file in the working directory (see DATABASE_URL in config.py).
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Base class for ORM models to inherit from (like ReportRow)
Base = declarative_base()


def is_memory_sqlite(database_url):
    """True for SQLite URLs whose database lives only inside one connection."""
    if not database_url.startswith("sqlite"):
        return False
    path = database_url.split("://", 1)[1] if "://" in database_url else ""
    return path in ("", "/", "/:memory:") or "mode=memory" in path


def make_engine(database_url):
    """
    Create a SQLAlchemy engine for the given URL.

    SQLite connections are shared across threads (one engine serves every
    caller in the process), so check_same_thread is turned off for them.
    An in-memory SQLite database exists only inside its connection, so every
    thread is handed that same connection.
    """
    if database_url.startswith("sqlite"):
        options = {}
        if is_memory_sqlite(database_url):
            options["poolclass"] = StaticPool
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            future=True,
            **options,
        )

    return create_engine(database_url, pool_pre_ping=True, future=True)


def make_session_factory(engine):
    """
    Returns a session factory bound to the engine.
    Usage:
        Session = make_session_factory(engine)
        with Session() as session:
            session.execute(...)
    """
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
