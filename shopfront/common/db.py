"""Database bootstrap helpers."""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker


def build_session_factory(dsn: str, **engine_kwargs) -> sessionmaker:
    """Create one engine for `dsn` and return a session factory bound to it.

    Called from the composition root; stores receive the factory explicitly.
    """

    engine = create_engine(dsn, pool_pre_ping=True, **engine_kwargs)
    # `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def create_schema(session_factory: sessionmaker) -> None:
    """Create missing tables for every imported model (no-op for existing ones)."""

    Base.metadata.create_all(bind=session_factory.kw["bind"])


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass
