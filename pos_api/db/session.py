"""Database engine, session management and transaction boundaries."""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from pos_api.core.config import settings
from pos_api.core.errors import ConcurrentModification, StoreTimeout

logger = logging.getLogger(__name__)


def build_engine(database_url: str, timeout_seconds: float) -> Engine:
    """Create an engine whose store interactions are bounded by ``timeout_seconds``."""
    connect_args: dict[str, Any] = {}
    engine_kwargs: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
    else:
        statement_timeout_ms = int(timeout_seconds * 1000)
        if database_url.startswith("postgresql"):
            connect_args = {"options": f"-c statement_timeout={statement_timeout_ms}"}
        engine_kwargs = {"pool_timeout": timeout_seconds, "pool_pre_ping": True}
    return create_engine(database_url, connect_args=connect_args, **engine_kwargs)


engine = build_engine(settings.database_url, settings.store_timeout_seconds)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and ensure proper cleanup."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Run the enclosed block as one all-or-nothing transaction.

    Commits when the block finishes; any exception rolls everything back so no
    partial write is ever observable. Persistence-level failures are translated
    into the retryable error classes.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning("[STORE] Stale version detected, rejecting write: %s", exc)
        raise ConcurrentModification("The record was modified by another operation; retry the request.") from exc
    except IntegrityError as exc:
        db.rollback()
        logger.warning("[STORE] Integrity conflict: %s", exc.orig)
        raise ConcurrentModification("A conflicting write was detected; retry the request.") from exc
    except (OperationalError, PoolTimeoutError) as exc:
        db.rollback()
        logger.warning("[STORE] Store interaction failed or timed out: %s", exc)
        raise StoreTimeout(
            "The data store did not respond in time.",
            timeout_seconds=settings.store_timeout_seconds,
        ) from exc
    except Exception:
        db.rollback()
        raise
