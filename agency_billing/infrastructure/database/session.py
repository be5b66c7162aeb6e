"""Database session management with connection pooling"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from agency_billing.config import settings
from agency_billing.domain.exceptions import TransactionFailureError

logger = logging.getLogger(__name__)

# Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,  # Verify connections before using
    pool_size=10,
    max_overflow=10,
    pool_recycle=3600,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Atomic boundary: commit when the block completes, roll back on any error.

    Store-level failures are re-raised as TransactionFailureError so callers
    can retry the whole (idempotent) operation.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Transaction rolled back: %s", e)
        raise TransactionFailureError(str(e)) from e
    except Exception:
        db.rollback()
        raise
