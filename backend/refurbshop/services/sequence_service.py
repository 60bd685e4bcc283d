# Overview: Named monotonic counters (order numbers, inventory numbers).

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Counter


# First value handed out for a counter that does not exist yet
SEQUENCE_SEEDS = {
    "orders": 1001,
    "inventory": 1,
    "devices": 1,
}
DEFAULT_SEED = 1


class SequenceError(ValueError):
    """Raised when a counter name is unusable."""
    pass


def next_value(name: str) -> int:
    """
    Allocate the next value of counter `name` inside the caller's transaction.

    Does NOT commit: the value belongs to the transaction that numbers an
    entity with it. If that transaction aborts, the value is released with it
    (gaps are allowed, duplicates are not).

    The increment is a single UPDATE ... SET next_value = next_value + 1, so
    concurrent writers serialize on the counter row. The first call for an
    unseen name inserts the row inside a savepoint; a racing first call that
    loses on the primary key falls back to the increment path instead of
    returning the seed a second time.
    """
    if not name:
        raise SequenceError("counter name is required")

    allocated = _increment(name)
    if allocated is not None:
        return allocated

    seed = SEQUENCE_SEEDS.get(name, DEFAULT_SEED)
    try:
        with db.session.begin_nested():
            db.session.add(Counter(name=name, next_value=seed + 1))
        return seed
    except IntegrityError:
        allocated = _increment(name)
        if allocated is None:
            raise
        return allocated


def _increment(name: str) -> int | None:
    stmt = (
        update(Counter)
        .where(Counter.name == name)
        .values(next_value=Counter.next_value + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None

    current = (
        db.session.query(Counter.next_value)
        .filter(Counter.name == name)
        .scalar()
    )
    return current - 1


def peek(name: str) -> int:
    """Next value that would be allocated (read-only, for CLI/inspection)."""
    counter = db.session.get(Counter, name)
    if counter is None:
        return SEQUENCE_SEEDS.get(name, DEFAULT_SEED)
    return counter.next_value
