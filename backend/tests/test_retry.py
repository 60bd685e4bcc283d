"""
Bounded retry around write transactions (run_with_retry).
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from refurbshop.errors import ConflictError, TransientStoreConflict
from refurbshop.services.concurrency import run_with_retry


def _locked():
    return OperationalError("UPDATE counters", {}, Exception("database is locked"))


def test_gives_up_after_attempts(db_session):
    calls = []

    def op():
        calls.append(1)
        raise _locked()

    with pytest.raises(TransientStoreConflict) as exc:
        run_with_retry(op, attempts=3, backoff_base=0)

    assert len(calls) == 3
    assert exc.value.details == {"retryable": True}
    assert exc.value.status_code == 409
    assert exc.value.retryable is True
    assert isinstance(exc.value.__cause__, OperationalError)


def test_attempts_default_from_config(app, db_session, monkeypatch):
    monkeypatch.setitem(app.config, "TXN_RETRY_ATTEMPTS", 5)
    calls = []

    def op():
        calls.append(1)
        raise StaleDataError("UPDATE statement on table 'orders' expected to update 1 row(s)")

    with pytest.raises(TransientStoreConflict):
        run_with_retry(op)

    assert len(calls) == 5


def test_recovers_when_conflict_clears(db_session):
    calls = []

    def op():
        calls.append(1)
        if len(calls) < 3:
            raise StaleDataError("stale")
        return "done"

    assert run_with_retry(op, attempts=3, backoff_base=0) == "done"
    assert len(calls) == 3


def test_domain_errors_are_not_retried(db_session):
    calls = []

    def op():
        calls.append(1)
        raise ConflictError("Item x is no longer available")

    with pytest.raises(ConflictError) as exc:
        run_with_retry(op, attempts=3, backoff_base=0)

    assert not isinstance(exc.value, TransientStoreConflict)
    assert len(calls) == 1
