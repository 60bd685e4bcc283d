# Overview: Inventory item state machine shared by checkout, payments, returns and intake.

"""
Inventory Item Lifecycle

================================================================================
PURPOSE: Single authority for InventoryItem.status / InventoryItem.listed
================================================================================

STATE MACHINE:
    received -> inspecting -> refurbishing -> listed -> reserved -> sold
                                                 ^          |         |
                                                 +----------+         |
                                              (released reservation)  |
    received <--------------------------------------------------------+
                                (return)

RULES:
1. Only the transitions in VALID_TRANSITIONS exist. Anything else fails closed.
2. listed is True if and only if status == "listed"; apply_transition() is the
   only code that writes either field after creation.
3. Reserving a non-listed item is a ConflictError (someone else got it first).
4. Selling a non-reserved item or returning a non-sold item is an
   InvalidStateError (a caller bug or an out-of-band edit, never retried).

Which caller may drive which edge is enforced by the callers themselves:
- listed -> reserved      checkout_service
- reserved -> sold        checkout_service (stub) / reconciliation_service
- reserved -> listed      order_service.release_order
- sold -> received        return_service
- intake pipeline edges   inventory_service.advance_item
================================================================================
"""

from __future__ import annotations

from ..errors import ConflictError, InvalidStateError, ValidationError
from ..models import InventoryItem


STATUS_RECEIVED = "received"
STATUS_INSPECTING = "inspecting"
STATUS_REFURBISHING = "refurbishing"
STATUS_LISTED = "listed"
STATUS_RESERVED = "reserved"
STATUS_SOLD = "sold"

VALID_STATUSES = {
    STATUS_RECEIVED,
    STATUS_INSPECTING,
    STATUS_REFURBISHING,
    STATUS_LISTED,
    STATUS_RESERVED,
    STATUS_SOLD,
}

VALID_TRANSITIONS = {
    (STATUS_RECEIVED, STATUS_INSPECTING),
    (STATUS_INSPECTING, STATUS_REFURBISHING),
    (STATUS_REFURBISHING, STATUS_LISTED),
    (STATUS_LISTED, STATUS_RESERVED),
    (STATUS_RESERVED, STATUS_SOLD),
    (STATUS_RESERVED, STATUS_LISTED),
    (STATUS_SOLD, STATUS_RECEIVED),
}

# Edges staff may drive directly from the admin surface
PIPELINE_TRANSITIONS = {
    (STATUS_RECEIVED, STATUS_INSPECTING),
    (STATUS_INSPECTING, STATUS_REFURBISHING),
    (STATUS_REFURBISHING, STATUS_LISTED),
}


def validate_status(status: str) -> None:
    if status not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """Check if a state transition is valid according to the lifecycle rules."""
    validate_status(from_status)
    validate_status(to_status)
    return (from_status, to_status) in VALID_TRANSITIONS


def is_available(item: InventoryItem) -> bool:
    """Purchasable means both flags agree: status listed AND listed flag set."""
    return item.status == STATUS_LISTED and bool(item.listed)


def apply_transition(item: InventoryItem, to_status: str) -> InventoryItem:
    """
    Move an item to `to_status`, keeping `listed` in step.

    Raises:
        ConflictError: reserving an item that is not purchasable
        InvalidStateError: any other transition not in VALID_TRANSITIONS
    """
    validate_status(to_status)
    from_status = item.status

    if to_status == STATUS_RESERVED and not is_available(item):
        raise ConflictError(
            f"Item {item.id} is no longer available",
            details={"unavailable": [item.id]},
        )

    if not can_transition(from_status, to_status):
        raise InvalidStateError(
            f"Cannot move item {item.id} from '{from_status}' to '{to_status}'"
        )

    item.status = to_status
    item.listed = to_status == STATUS_LISTED
    return item


def reserve(item: InventoryItem) -> InventoryItem:
    return apply_transition(item, STATUS_RESERVED)


def sell(item: InventoryItem) -> InventoryItem:
    if item.status != STATUS_RESERVED:
        raise InvalidStateError(
            f"Item {item.id} must be reserved to be sold (current: {item.status})"
        )
    return apply_transition(item, STATUS_SOLD)


def release(item: InventoryItem) -> InventoryItem:
    if item.status != STATUS_RESERVED:
        raise InvalidStateError(
            f"Item {item.id} must be reserved to be released (current: {item.status})"
        )
    return apply_transition(item, STATUS_LISTED)


def receive_return(item: InventoryItem) -> InventoryItem:
    if item.status != STATUS_SOLD:
        raise InvalidStateError(
            f'Item must have status "sold" to process a return (current: {item.status})'
        )
    return apply_transition(item, STATUS_RECEIVED)
