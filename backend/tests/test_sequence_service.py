from refurbshop.services import sequence_service
from refurbshop.services.sequence_service import next_value, peek


def test_orders_counter_starts_at_seed(db_session):
    assert peek("orders") == 1001
    assert next_value("orders") == 1001
    assert next_value("orders") == 1002
    db_session.commit()

    assert peek("orders") == 1003


def test_counters_are_independent(db_session):
    assert next_value("inventory") == 1
    assert next_value("orders") == 1001
    assert next_value("inventory") == 2
    db_session.commit()


def test_rolled_back_allocation_is_released(db_session):
    next_value("orders")
    db_session.commit()

    next_value("orders")
    db_session.rollback()

    assert next_value("orders") == 1002
    db_session.commit()


def test_losing_first_call_race_falls_back_to_increment(db_session, monkeypatch):
    """The caller that loses the seed insert must not hand out the seed again."""
    assert next_value("orders") == 1001
    db_session.commit()
    # The winner's row was written by another session
    db_session.expunge_all()

    real_increment = sequence_service._increment
    calls = []

    def increment_missing_row_once(name):
        calls.append(name)
        if len(calls) == 1:
            return None
        return real_increment(name)

    monkeypatch.setattr(sequence_service, "_increment", increment_missing_row_once)

    assert next_value("orders") == 1002
    db_session.commit()

    assert calls == ["orders", "orders"]
    assert peek("orders") == 1003
