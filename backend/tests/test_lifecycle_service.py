import pytest

from refurbshop.errors import ConflictError, InvalidStateError, ValidationError
from refurbshop.models import InventoryItem
from refurbshop.services import lifecycle_service


def _item(status):
    return InventoryItem(id="item-1", status=status, listed=status == "listed")


@pytest.mark.parametrize("from_status,to_status", sorted(lifecycle_service.VALID_TRANSITIONS))
def test_valid_transitions_keep_listed_in_step(from_status, to_status):
    item = _item(from_status)
    lifecycle_service.apply_transition(item, to_status)

    assert item.status == to_status
    assert item.listed is (to_status == "listed")


def test_reserving_a_reserved_item_is_a_conflict():
    item = _item("reserved")
    with pytest.raises(ConflictError) as exc:
        lifecycle_service.reserve(item)
    assert exc.value.details == {"unavailable": ["item-1"]}


def test_reserving_requires_both_status_and_flag():
    item = InventoryItem(id="item-1", status="listed", listed=False)
    with pytest.raises(ConflictError):
        lifecycle_service.reserve(item)


def test_returning_a_listed_item_is_invalid():
    item = _item("listed")
    with pytest.raises(InvalidStateError) as exc:
        lifecycle_service.receive_return(item)
    assert "sold" in str(exc.value)
    assert item.status == "listed"


def test_selling_requires_reservation():
    item = _item("listed")
    with pytest.raises(InvalidStateError):
        lifecycle_service.sell(item)


def test_releasing_requires_reservation():
    with pytest.raises(InvalidStateError):
        lifecycle_service.release(_item("sold"))


def test_skipping_pipeline_steps_is_rejected():
    item = _item("received")
    with pytest.raises(InvalidStateError):
        lifecycle_service.apply_transition(item, "listed")
    assert item.status == "received"


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError):
        lifecycle_service.apply_transition(_item("listed"), "shipped")
