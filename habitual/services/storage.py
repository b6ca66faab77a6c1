"""
Commit helper: one commit per logical operation, all-or-nothing.
"""
import logging

from sqlalchemy.orm import Session

from habitual.core.errors import HabitualException, StorageError

logger = logging.getLogger(__name__)


def commit(db: Session, operation: str) -> None:
    """
    Commit the session or roll it back. Domain errors raised during flush
    propagate unchanged; anything else surfaces as StorageError. Either way
    the session is usable again afterwards.
    """
    try:
        db.commit()
    except HabitualException:
        db.rollback()
        logger.warning("commit rejected during %s", operation)
        raise
    except Exception as exc:
        db.rollback()
        logger.exception("storage commit failed during %s", operation)
        raise StorageError(f"Could not save changes ({operation}).", operation=operation) from exc
