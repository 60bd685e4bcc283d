import pytest

from conftest import make_checkout_request
from refurbshop.errors import InvalidStateError, NotFoundError
from refurbshop.models import InventoryItem, LedgerEvent, Order
from refurbshop.services import checkout_service, order_service


@pytest.fixture
def reserved_order(db_session, make_item, stripe_mode, monkeypatch):
    import stripe
    from types import SimpleNamespace

    monkeypatch.setattr(
        stripe.checkout.Session,
        "create",
        lambda **kwargs: SimpleNamespace(id="cs_test_9", url="https://checkout.stripe.test/cs_test_9"),
    )
    item = make_item()
    result = checkout_service.checkout(make_checkout_request([item.id]))
    return db_session.get(Order, result.order_id)


def test_release_relists_items(db_session, reserved_order):
    item_id = reserved_order.inventory_item_ids[0]

    order = order_service.release_order(reserved_order.id, note="Never paid")

    assert order.status == "cancelled"
    assert order.cancelled_at is not None
    item = db_session.get(InventoryItem, item_id)
    assert item.status == "listed"
    assert item.listed is True
    assert db_session.query(LedgerEvent).filter_by(
        order_id=order.id, event_type="order.released"
    ).count() == 1


def test_released_item_can_be_bought_again(db_session, reserved_order, monkeypatch, app):
    item_id = reserved_order.inventory_item_ids[0]
    order_service.release_order(reserved_order.id)
    monkeypatch.setitem(app.config, "PAYMENT_MODE", "stub")

    result = checkout_service.checkout(make_checkout_request([item_id]))

    assert result.paid
    assert db_session.get(InventoryItem, item_id).status == "sold"


def test_paid_order_cannot_be_released(db_session, make_item):
    item = make_item()
    result = checkout_service.checkout(make_checkout_request([item.id]))

    with pytest.raises(InvalidStateError):
        order_service.release_order(result.order_id)

    assert db_session.get(InventoryItem, item.id).status == "sold"


def test_release_twice_fails(db_session, reserved_order):
    order_service.release_order(reserved_order.id)

    with pytest.raises(InvalidStateError):
        order_service.release_order(reserved_order.id)


def test_release_unknown_order(db_session):
    with pytest.raises(NotFoundError):
        order_service.release_order("missing")


def test_customer_lookup_requires_matching_email(db_session, make_item):
    item = make_item()
    result = checkout_service.checkout(make_checkout_request([item.id], email="Jane@Example.com"))

    assert order_service.get_order_for_customer(result.order_id, "jane@example.com").id == result.order_id
    with pytest.raises(NotFoundError):
        order_service.get_order_for_customer(result.order_id, "someone@else.com")
    with pytest.raises(NotFoundError):
        order_service.get_order_for_customer(result.order_id, None)


def test_list_pending_orders(db_session, reserved_order):
    pending = order_service.list_pending_orders()
    assert [o.id for o in pending] == [reserved_order.id]
