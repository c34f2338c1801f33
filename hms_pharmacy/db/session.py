# hms_pharmacy/db/session.py
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from hms_pharmacy.core.config import settings


def make_engine(db_uri: str, **overrides: Any) -> Engine:
    kwargs: Dict[str, Any] = {"future": True, "echo": settings.SQL_ECHO}
    if db_uri.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(
            pool_pre_ping=True,
            pool_recycle=280,
            pool_size=10,
            max_overflow=20,
        )
    kwargs.update(overrides)
    return create_engine(db_uri, **kwargs)


engine: Engine = make_engine(settings.SQLALCHEMY_DATABASE_URI)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)
