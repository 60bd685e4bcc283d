# Overview: Append-only audit ledger for reservation, payment and return events.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..extensions import db
from ..models import LedgerEvent
from ..time_utils import utcnow
"""
Ledger invariants

- Append-only: no updates or deletes of existing events.
- Events are written inside the same DB transaction as the change they record.
- source distinguishes how a payment was completed ("stub" vs "stripe"), so a
  stub completion can never be mistaken for a collected payment.
"""


def append_event(
    *,
    event_type: str,
    entity_type: str,
    entity_id: str | int,
    order_id: str | None = None,
    inventory_item_id: str | None = None,
    source: str | None = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
    occurred_at: Optional[datetime] = None,
) -> LedgerEvent:
    ev = LedgerEvent(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=str(entity_id),
        order_id=order_id,
        inventory_item_id=inventory_item_id,
        source=source,
        note=note[:255] if note else note,
        payload=payload,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(ev)
    return ev


def events_for_order(order_id: str) -> list[LedgerEvent]:
    return (
        db.session.query(LedgerEvent)
        .filter(LedgerEvent.order_id == order_id)
        .order_by(LedgerEvent.id)
        .all()
    )


def events_for_item(inventory_item_id: str) -> list[LedgerEvent]:
    return (
        db.session.query(LedgerEvent)
        .filter(LedgerEvent.inventory_item_id == inventory_item_id)
        .order_by(LedgerEvent.id)
        .all()
    )
