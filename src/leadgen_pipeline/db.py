from __future__ import annotations

from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import load_config


class Base(DeclarativeBase):
    pass


_engine: Optional[Engine] = None
SessionLocal = sessionmaker(expire_on_commit=False)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        config = load_config()
        if not config.database_url:
            raise RuntimeError("DATABASE_URL is not set")
        _engine = create_engine(
            config.database_url,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        SessionLocal.configure(bind=_engine)
    return _engine


@contextmanager
def session_scope():
    if SessionLocal.kw.get("bind") is None:
        get_engine()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
