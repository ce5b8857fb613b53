"""Engine and session factory.

SQLite ignores SELECT ... FOR UPDATE, so row locks taken by the ledger only
serialize recomputations on a server database (PostgreSQL/MySQL).
"""
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from app.core.config import settings


def make_engine(url: Optional[str] = None) -> Engine:
    url = url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        # an in-memory database lives in one connection; share it between sessions
        in_memory = url in ("sqlite://", "sqlite:///:memory:")
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else NullPool,
        )
    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
    )


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
