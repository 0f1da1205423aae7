"""Database engine and session configuration.

WHAT:
    Builds the SQLAlchemy engine and session factory from `Settings.DATABASE_URL`
    and exposes the FastAPI dependency that hands a session to each request.

WHY:
    - The engine is created once in `main.create_app` and kept on `app.state`,
      so tests and scripts can build their own without touching module globals.
    - Every request gets its own session that is always closed afterwards.

USAGE:
    @router.get("/items")
    def get_items(db: Session = Depends(get_db)):
        return db.query(Item).all()
"""

from contextlib import contextmanager
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Base is defined in campaign_manager.models to keep a single registry
from .models import Base  # noqa: F401


def build_engine(database_url: str) -> Engine:
    """Create an engine with pool settings suited to the backend in use.

    NOTE: SQLite engines (dev and tests) do not support pool_size/max_overflow.
    In-memory SQLite needs a StaticPool so every session sees the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_size=10,           # Base pool size
        max_overflow=20,        # Allow up to 30 total connections under load
        pool_recycle=3600,      # Recycle connections every hour
        pool_pre_ping=True,     # Validate connections before use
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False)


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a database session for FastAPI dependency injection.

    The factory comes from the running app (see `main.create_app`).
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_sync_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Context manager for sessions outside FastAPI (scripts, migrations, tests).

    Example:
        with get_sync_session(factory) as db:
            users = db.query(User).all()
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
