import pytest

from conftest import make_checkout_request
from refurbshop.errors import InvalidStateError, NotFoundError
from refurbshop.models import InventoryItem, LedgerEvent, Order
from refurbshop.services import checkout_service, return_service


def test_return_moves_sold_item_back_to_received(db_session, make_item):
    item = make_item(grade="A")
    result = checkout_service.checkout(make_checkout_request([item.id]))

    returned = return_service.process_return(
        item.id, reason="Screen flicker", new_grade="B", battery_health=87
    )

    assert returned.status == "received"
    assert returned.listed is False
    assert returned.source_type == "return"
    assert returned.cosmetic_grade == "B"
    assert returned.battery_health == 87
    assert returned.return_reason == "Screen flicker"
    assert returned.returned_from_order_id == result.order_id
    assert returned.returned_at is not None

    # Orders are not modified by returns
    assert db_session.get(Order, result.order_id).payment_status == "paid"
    assert db_session.query(LedgerEvent).filter_by(
        inventory_item_id=item.id, event_type="inventory.returned"
    ).count() == 1


def test_explicit_order_id_is_recorded(db_session, make_item):
    item = make_item(status="sold")

    returned = return_service.process_return(item.id, order_id="external-order-1")

    assert returned.returned_from_order_id == "external-order-1"


def test_grade_is_kept_when_not_supplied(db_session, make_item):
    item = make_item(status="sold", grade="A")

    returned = return_service.process_return(item.id)

    assert returned.cosmetic_grade == "A"
    assert returned.returned_from_order_id is None


def test_returning_a_listed_item_fails(db_session, make_item):
    item = make_item(status="listed")

    with pytest.raises(InvalidStateError) as exc:
        return_service.process_return(item.id)

    assert 'must have status "sold"' in str(exc.value)
    assert db_session.get(InventoryItem, item.id).status == "listed"


def test_unknown_item_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        return_service.process_return("nope")


def test_location_can_be_cleared(db_session, make_item):
    item = make_item(status="sold")
    item.location = "Shelf A1"
    db_session.commit()

    returned = return_service.process_return(item.id, location=None)

    assert returned.location is None
