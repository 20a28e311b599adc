"""SQLAlchemy async engine, session factory, and base."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from chime.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy models."""


def create_engine():
    settings = get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


_engine = None
_session_factory = None


def get_engine():
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


def reset_engine() -> None:
    """Drop the cached engine so the next caller binds to the running event loop.

    Celery tasks call ``asyncio.run`` once per tick; pooled connections from a
    previous loop cannot be reused.
    """
    global _engine, _session_factory
    _engine = None
    _session_factory = None
