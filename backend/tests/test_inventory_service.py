from decimal import Decimal

import pytest

from refurbshop.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from refurbshop.services import inventory_service
from refurbshop.validation import ReceiveRequest


def _request(device_id, serial="356789012345678", **overrides):
    fields = dict(
        device_id=device_id,
        serial=serial,
        source_type="trade-in",
        cosmetic_grade="A",
        sell_price_aud=Decimal("449.00"),
        cost_aud=Decimal("250.00"),
    )
    fields.update(overrides)
    return ReceiveRequest(**fields)


def test_receive_numbers_items_sequentially(db_session, device):
    first = inventory_service.receive_item(_request(device.id, serial="AAA1"))
    second = inventory_service.receive_item(_request(device.id, serial="AAA2"))

    assert (first.inventory_number, second.inventory_number) == (1, 2)
    assert first.status == "received"
    assert first.listed is False
    assert first.category == "Phone"


def test_duplicate_serial_ignores_case(db_session, device):
    inventory_service.receive_item(_request(device.id, serial="abc123"))

    with pytest.raises(ConflictError):
        inventory_service.receive_item(_request(device.id, serial=" ABC123 "))


def test_duplicate_serial_caught_by_unique_constraint(db_session, device, monkeypatch):
    """A racing intake that slips past the lookup still gets a 409, not a 500."""
    first = inventory_service.receive_item(_request(device.id, serial="RACE-1"))
    # Make the pre-insert lookup miss, as if the other intake had not committed yet
    monkeypatch.setattr(inventory_service, "normalize_serial", lambda serial: "NOT-ON-FILE")

    with pytest.raises(ConflictError) as exc:
        inventory_service.receive_item(_request(device.id, serial="race-1"))

    assert "race-1" in str(exc.value)
    db_session.expire_all()
    assert db_session.query(inventory_service.InventoryItem).count() == 1
    assert inventory_service.get_item(first.id).serial == "RACE-1"


def test_unknown_device(db_session):
    with pytest.raises(NotFoundError):
        inventory_service.receive_item(_request(999))


def test_pipeline_walks_to_listed(db_session, device):
    item = inventory_service.receive_item(_request(device.id))

    for status in ("inspecting", "refurbishing", "listed"):
        item = inventory_service.advance_item(item.id, status)

    assert item.status == "listed"
    assert item.listed is True


def test_listing_requires_price(db_session, device):
    item = inventory_service.receive_item(_request(device.id, sell_price_aud=None))
    inventory_service.advance_item(item.id, "inspecting")
    inventory_service.advance_item(item.id, "refurbishing")

    with pytest.raises(ValidationError):
        inventory_service.advance_item(item.id, "listed")


@pytest.mark.parametrize("target", ["reserved", "sold", "listed"])
def test_pipeline_cannot_skip_or_jump(db_session, device, target):
    item = inventory_service.receive_item(_request(device.id))

    with pytest.raises(InvalidStateError):
        inventory_service.advance_item(item.id, target)
