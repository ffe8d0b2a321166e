from contextlib import contextmanager
from typing import Iterable

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from shared.core.exceptions import PersistenceError


def is_unique_violation(exc: IntegrityError, constraint: str, table: str, columns: Iterable[str]) -> bool:
    """
    True when the integrity error was raised by the given unique constraint.
    PostgreSQL reports the constraint name, SQLite reports "table.column" pairs.
    """
    message = str(exc.orig)
    if constraint in message:
        return True
    return all(f"{table}.{column}" in message for column in columns)


def _is_timeout(exc: DBAPIError) -> bool:
    message = str(exc.orig).lower()
    return "timeout" in message or "canceling statement" in message


@contextmanager
def persistence_guard(db: Session, action: str):
    """Rolls back and re-raises storage failures as PersistenceError."""
    try:
        yield
    except IntegrityError:
        db.rollback()
        raise
    except OperationalError as e:
        db.rollback()
        raise PersistenceError(f"Failed to {action}: {e.orig}", retryable=True) from e
    except DBAPIError as e:
        db.rollback()
        raise PersistenceError(f"Failed to {action}: {e.orig}", retryable=_is_timeout(e)) from e
