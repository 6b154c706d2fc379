"""Database sessions. One engine and one session factory per store."""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from app.core.config import settings
from app.core.exceptions import TransactionError

logger = logging.getLogger(__name__)


def make_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # SQLite: Use NullPool for thread-safety
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
        )
    # PostgreSQL/MySQL: Use QueuePool with sensible defaults
    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,  # Verify connection health
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


billing_engine = make_engine(settings.BILLING_DATABASE_URL)
inventory_engine = make_engine(settings.INVENTORY_DATABASE_URL)

BillingSessionLocal = make_session_factory(billing_engine)
InventorySessionLocal = make_session_factory(inventory_engine)


@contextmanager
def session_scope(session_factory: sessionmaker, store: str = "database") -> Iterator[Session]:
    """
    One transaction on one store.

    Commits when the block exits cleanly, rolls back on any exception and
    always closes the session. Driver errors surface as TransactionError;
    domain errors raised inside the block propagate unchanged.
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Rolled back {store} transaction: {e}")
        raise TransactionError(store, e) from e
    except BaseException:
        db.rollback()
        raise
    finally:
        db.close()
