from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import load_settings

settings = load_settings()

_engine_kwargs = {"future": True, "echo": False, "pool_pre_ping": True}
if settings.database_url in ("sqlite://", "sqlite:///:memory:"):
    # One shared connection, otherwise every pooled connection sees its own empty database.
    _engine_kwargs.update(connect_args={"check_same_thread": False}, poolclass=StaticPool)

engine = create_engine(settings.database_url, **_engine_kwargs)
SessionLocal = scoped_session(sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True))


@contextmanager
def session_scope() -> Iterator:
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
