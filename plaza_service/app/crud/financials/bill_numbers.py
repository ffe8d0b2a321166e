import logging
from datetime import date
from typing import Callable, Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.exceptions import TransientWriteConflict
from shared.helpers.db_helper import is_unique_violation
from ...enum.billing_enum import BILL_NUMBER_PREFIXES, BillKind
from ...models.financials.bills import Bill

logger = logging.getLogger(__name__)


def format_identifier(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year}-{sequence:03d}"


def next_identifier(existing_numbers: Iterable[Optional[str]], prefix: str, year: int) -> str:
    """
    Next number in the `{prefix}-{year}-` scope: highest parsed suffix + 1.
    Numbers of other scopes and unparsable suffixes are ignored; an empty
    scope starts at 1.
    """
    scope = f"{prefix}-{year}-"
    last_number = 0
    for number in existing_numbers:
        if not number or not number.startswith(scope):
            continue
        suffix = number[len(scope):]
        if suffix.isascii() and suffix.isdigit():
            last_number = max(last_number, int(suffix))

    return format_identifier(prefix, year, last_number + 1)


def scope_numbers(db: Session, column, prefix: str, year: int) -> list[str]:
    rows = db.query(column).filter(column.like(f"{prefix}-{year}-%")).all()
    return [row[0] for row in rows]


def allocate_and_insert(
    db: Session,
    column,
    prefix: str,
    year: int,
    build: Callable[[str], object],
    constraint: str,
):
    """
    Allocate the next number for the scope and flush the record carrying it
    inside a savepoint. `build(number)` returns the record to write (a new row
    or an existing one with its number set).

    A unique violation on the number column means a concurrent writer took the
    same number: the scope is re-read and the write re-issued, up to
    BILL_NUMBER_MAX_ATTEMPTS attempts in total.
    """
    table = column.class_.__tablename__
    attempts = max(1, settings.BILL_NUMBER_MAX_ATTEMPTS)

    for attempt in range(1, attempts + 1):
        number = next_identifier(scope_numbers(db, column, prefix, year), prefix, year)
        try:
            with db.begin_nested():
                record = build(number)
                db.add(record)
                db.flush()
            logger.info("Allocated %s (attempt %s)", number, attempt)
            return record
        except IntegrityError as e:
            if not is_unique_violation(e, constraint, table, [column.key]):
                raise
            logger.warning("Number %s already taken, attempt %s of %s",
                           number, attempt, attempts)

    raise TransientWriteConflict(
        f"Could not allocate a unique number in scope {prefix}-{year} after {attempts} attempts",
        data={"prefix": prefix, "year": year},
    )


def preview_bill_number(db: Session, kind: BillKind, year: Optional[int] = None) -> str:
    """Next bill number for the kind, without reserving it."""
    prefix = BILL_NUMBER_PREFIXES[BillKind(kind)]
    year = year or date.today().year
    return next_identifier(scope_numbers(db, Bill.bill_number, prefix, year), prefix, year)
