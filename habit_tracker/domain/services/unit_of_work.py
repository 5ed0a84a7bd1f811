import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from habit_tracker.domain.errors import HabitTrackerError, StoreWriteFailed

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session: Session, action: str) -> Iterator[Session]:
    """
    Run a block as one transaction and commit it.

    Domain errors roll back and propagate unchanged. Store failures roll back,
    are logged, and surface as ``StoreWriteFailed`` so the caller refetches.
    """
    try:
        yield session
        session.commit()
    except HabitTrackerError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("store write failed during %s", action)
        raise StoreWriteFailed() from exc
