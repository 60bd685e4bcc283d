# Overview: Staff intake of new units and the refurbishment pipeline steps.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Device, InventoryItem
from ..models.inventory import new_id, normalize_serial
from ..validation import ReceiveRequest
from . import lifecycle_service
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_event
from .sequence_service import next_value


def get_item(item_id: str) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise NotFoundError(f"Inventory item {item_id} not found")
    return item


def receive_item(request: ReceiveRequest) -> InventoryItem:
    """
    Create a unit in status "received".

    The display number comes from the "inventory" counter in the same
    transaction as the insert. Serials are unique ignoring case and
    surrounding whitespace.

    Raises:
        NotFoundError: unknown device
        ConflictError: serial already on file
    """
    serial_key = normalize_serial(request.serial)

    def _op() -> InventoryItem:
        begin_write()
        device = db.session.get(Device, request.device_id)
        if device is None:
            raise NotFoundError(f"Device {request.device_id} not found")

        existing = (
            db.session.query(InventoryItem.id)
            .filter(InventoryItem.serial_key == serial_key)
            .first()
        )
        if existing is not None:
            raise ConflictError(
                f"An item with serial {request.serial} already exists",
                details={"existingId": existing[0]},
            )

        item = InventoryItem(
            id=new_id(),
            inventory_number=next_value("inventory"),
            serial=request.serial,
            device_id=device.id,
            category=request.category or device.category,
            cosmetic_grade=request.cosmetic_grade,
            battery_health=request.battery_health,
            cost_nzd=request.cost_nzd,
            cost_aud=request.cost_aud,
            sell_price_aud=request.sell_price_aud,
            sell_price_nzd=request.sell_price_nzd,
            location=request.location,
            images=list(request.images),
            notes=request.notes,
            status=lifecycle_service.STATUS_RECEIVED,
            listed=False,
            source_type=request.source_type,
            source_quote_id=request.source_quote_id,
            source_name=request.source_name,
        )
        db.session.add(item)
        append_event(
            event_type="inventory.received",
            entity_type="inventory_item",
            entity_id=item.id,
            inventory_item_id=item.id,
            source="staff",
            payload={"serial": request.serial, "source_type": request.source_type},
        )
        try:
            db.session.flush()
        except IntegrityError as exc:
            # Another intake committed the same serial after the check above
            if "serial_key" not in str(exc.orig):
                raise
            db.session.rollback()
            raise ConflictError(
                f"An item with serial {request.serial} already exists"
            ) from exc
        db.session.commit()
        return item

    item = run_with_retry(_op)
    current_app.logger.info("Received item #%s (%s)", item.inventory_number, item.serial)
    return item


def advance_item(item_id: str, to_status: str) -> InventoryItem:
    """
    Staff-driven pipeline step: received -> inspecting -> refurbishing -> listed.

    Reservation, sale and return are owned by checkout, reconciliation and
    returns; asking for them here is an InvalidStateError.
    """
    lifecycle_service.validate_status(to_status)

    def _op() -> InventoryItem:
        begin_write()
        item = lock_for_update(
            db.session.query(InventoryItem).filter_by(id=item_id)
        ).first()
        if item is None:
            raise NotFoundError(f"Inventory item {item_id} not found")

        from_status = item.status
        if (from_status, to_status) not in lifecycle_service.PIPELINE_TRANSITIONS:
            raise InvalidStateError(
                f"Cannot move item {item.id} from '{from_status}' to '{to_status}'"
            )
        if to_status == lifecycle_service.STATUS_LISTED and item.sell_price_aud is None:
            raise ValidationError("A sell price (AUD) is required before listing")

        lifecycle_service.apply_transition(item, to_status)
        append_event(
            event_type="inventory.status_changed",
            entity_type="inventory_item",
            entity_id=item.id,
            inventory_item_id=item.id,
            source="staff",
            payload={"from": from_status, "to": to_status},
        )
        db.session.commit()
        return item

    return run_with_retry(_op)
