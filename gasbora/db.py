# gasbora/db.py
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .models.base import Base

# register tables on Base.metadata
from .models import account, listing  # noqa: E402,F401


def make_engine(url: str) -> Engine:
    # SQLite and PostgreSQL (or anything else SQLAlchemy speaks)
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty db
            kwargs["poolclass"] = StaticPool
        return create_engine(url, future=True, **kwargs)
    return create_engine(url, pool_pre_ping=True, future=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def create_tables(engine: Engine) -> None:
    # handy for development; a hosted deployment owns its own schema
    Base.metadata.create_all(bind=engine)
