"""Context manager for all-or-nothing writes on a request session."""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from memberhub.core.exceptions import ResourceConflictError

logger = logging.getLogger("memberhub.db")


@contextmanager
def atomic_transaction(db: Session, conflict_message: str = "Concurrent update, try again") -> Iterator[Session]:
    """Commit everything done in the block, or roll all of it back.

    Constraint violations and lock/deadlock aborts from the database surface as
    ``ResourceConflictError``; callers are expected to report them, not retry.
    """
    try:
        yield db
        db.commit()
    except (IntegrityError, OperationalError) as e:
        db.rollback()
        logger.warning("Transaction aborted: %s", e.orig if hasattr(e, "orig") else e)
        raise ResourceConflictError(conflict_message) from e
    except Exception:
        db.rollback()
        raise
