"""Storage access helpers shared by the services.

Failures from SQLAlchemy surface as ``DependencyError``. Reads are idempotent
and get one retry; commits are never retried.
"""

import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.core.errors import DependencyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def read_with_retry(db: Session, fetch: Callable[[], T]) -> T:
    try:
        return fetch()
    except SQLAlchemyError as exc:
        logger.warning("Storage read failed, retrying once: %s", exc)
        db.rollback()
    try:
        return fetch()
    except SQLAlchemyError as exc:
        logger.error("Storage read failed after retry: %s", exc)
        db.rollback()
        raise DependencyError("Storage is unavailable") from exc


def commit_or_raise(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Storage write failed: %s", exc)
        raise DependencyError("Storage is unavailable") from exc
