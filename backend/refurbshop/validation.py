# Overview: Request payload parsing for the shop and staff APIs.

"""
Turns JSON bodies into typed request objects. All problems are reported as
ValidationError (400) before any transaction starts. JSON keys follow the
storefront's camelCase contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .errors import ValidationError
from .money import to_money


SUPPORTED_CURRENCIES = {"AUD", "NZD"}
SOURCE_TYPES = {"trade-in", "bulk", "direct-purchase", "return"}

# Largest value a 32-bit INTEGER column holds; also bounds ids in requests
MAX_DB_INT = 2**31 - 1
MAX_UPSELL_QUANTITY = 99
MAX_BATTERY_HEALTH = 100
# Numeric(10, 2) columns top out at 99,999,999.99
MAX_AMOUNT = Decimal("99999999.99")

ADDRESS_REQUIRED_FIELDS = ("line1", "city", "region", "postcode", "country")

UNSET = object()


@dataclass(frozen=True)
class ShippingAddress:
    line1: str
    city: str
    region: str
    postcode: str
    country: str
    line2: str | None = None

    def to_dict(self) -> dict:
        return {
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "region": self.region,
            "postcode": self.postcode,
            "country": self.country,
        }


@dataclass(frozen=True)
class UpsellSelection:
    upsell_id: int
    quantity: int


@dataclass(frozen=True)
class CheckoutRequest:
    inventory_ids: tuple[str, ...]
    customer_name: str
    customer_email: str
    shipping_address: ShippingAddress
    upsells: tuple[UpsellSelection, ...] = ()
    customer_phone: str | None = None
    currency: str = "AUD"


@dataclass(frozen=True)
class ReceiveRequest:
    device_id: int
    serial: str
    source_type: str
    cosmetic_grade: str
    sell_price_aud: Decimal | None
    category: str | None = None
    cost_nzd: Decimal | None = None
    cost_aud: Decimal | None = None
    sell_price_nzd: Decimal | None = None
    battery_health: int | None = None
    location: str | None = None
    notes: str | None = None
    source_quote_id: str | None = None
    source_name: str | None = None
    images: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReturnRequest:
    inventory_id: str
    return_reason: str | None = None
    cosmetic_grade: str | None = None
    order_id: str | None = None
    battery_health: int | None = None
    location: Any = UNSET
    notes: str | None = None


def _body(data) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    return value or None


def _required_str(data: dict, key: str, message: str | None = None) -> str:
    value = _optional_str(data, key)
    if not value:
        raise ValidationError(message or f"{key} is required")
    return value


def _int(value, key: str, *, minimum: int | None = None, maximum: int = MAX_DB_INT) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        result = int(value.strip())
    else:
        raise ValidationError(f"{key} must be an integer")
    if minimum is not None and result < minimum:
        raise ValidationError(f"{key} must be at least {minimum}")
    if result > maximum:
        raise ValidationError(f"{key} must be at most {maximum}")
    return result


def _optional_int(
    data: dict, key: str, *, minimum: int | None = None, maximum: int = MAX_DB_INT
) -> int | None:
    if data.get(key) is None:
        return None
    return _int(data[key], key, minimum=minimum, maximum=maximum)


def _optional_money(data: dict, key: str) -> Decimal | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    try:
        amount = to_money(value)
    except ValueError:
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a number")
    if amount < 0:
        raise ValidationError(f"{key} cannot be negative")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{key} must be at most {MAX_AMOUNT}")
    return amount


def parse_checkout_request(data) -> CheckoutRequest:
    data = _body(data)

    raw_items = data.get("items") or []
    raw_upsells = data.get("upsellItems") or []
    if not isinstance(raw_items, list) or not isinstance(raw_upsells, list):
        raise ValidationError("items and upsellItems must be lists")
    if not raw_items and not raw_upsells:
        raise ValidationError("At least one item is required")

    inventory_ids: list[str] = []
    for entry in raw_items:
        if not isinstance(entry, dict):
            raise ValidationError("Each item must be an object with an inventoryId")
        inventory_id = _required_str(entry, "inventoryId")
        if inventory_id in inventory_ids:
            raise ValidationError(f"Item {inventory_id} appears more than once")
        inventory_ids.append(inventory_id)

    upsells: list[UpsellSelection] = []
    for entry in raw_upsells:
        if not isinstance(entry, dict) or entry.get("upsellId") is None:
            raise ValidationError("Each add-on must be an object with an upsellId")
        quantity = entry.get("quantity", 1)
        upsells.append(UpsellSelection(
            upsell_id=_int(entry["upsellId"], "upsellId", minimum=1),
            quantity=_int(quantity, "quantity", minimum=1, maximum=MAX_UPSELL_QUANTITY),
        ))

    customer_name = _optional_str(data, "customerName")
    customer_email = _optional_str(data, "customerEmail")
    if not customer_name or not customer_email:
        raise ValidationError("Customer name and email are required")
    if "@" not in customer_email:
        raise ValidationError("customerEmail is not a valid email address")

    address = data.get("shippingAddress")
    if not isinstance(address, dict) or any(
        not _optional_str(address, key) for key in ADDRESS_REQUIRED_FIELDS
    ):
        raise ValidationError("Complete shipping address is required")

    currency = (_optional_str(data, "currency") or "AUD").upper()
    if currency not in SUPPORTED_CURRENCIES:
        raise ValidationError(f"currency must be one of {', '.join(sorted(SUPPORTED_CURRENCIES))}")

    return CheckoutRequest(
        inventory_ids=tuple(inventory_ids),
        upsells=tuple(upsells),
        customer_name=customer_name,
        customer_email=customer_email,
        customer_phone=_optional_str(data, "customerPhone"),
        shipping_address=ShippingAddress(
            line1=_optional_str(address, "line1"),
            line2=_optional_str(address, "line2"),
            city=_optional_str(address, "city"),
            region=_optional_str(address, "region"),
            postcode=_optional_str(address, "postcode"),
            country=_optional_str(address, "country"),
        ),
        currency=currency,
    )


def parse_receive_request(data) -> ReceiveRequest:
    data = _body(data)

    if data.get("deviceId") is None:
        raise ValidationError("deviceId is required")
    serial = _required_str(data, "serial")
    source_type = _required_str(data, "sourceType")
    if source_type not in SOURCE_TYPES:
        raise ValidationError(f"sourceType must be one of {', '.join(sorted(SOURCE_TYPES))}")
    cosmetic_grade = _required_str(data, "cosmeticGrade")

    cost_nzd = _optional_money(data, "costNZD")
    cost_aud = _optional_money(data, "costAUD")
    if cost_nzd is None and cost_aud is None:
        raise ValidationError("A cost (costNZD or costAUD) is required")

    images = data.get("images") or []
    if not isinstance(images, list) or not all(isinstance(i, str) for i in images):
        raise ValidationError("images must be a list of URLs")

    return ReceiveRequest(
        device_id=_int(data["deviceId"], "deviceId", minimum=1),
        serial=serial,
        source_type=source_type,
        cosmetic_grade=cosmetic_grade,
        sell_price_aud=_optional_money(data, "sellPriceAUD"),
        sell_price_nzd=_optional_money(data, "sellPriceNZD"),
        category=_optional_str(data, "category"),
        cost_nzd=cost_nzd,
        cost_aud=cost_aud,
        battery_health=_optional_int(data, "batteryHealth", minimum=0, maximum=MAX_BATTERY_HEALTH),
        location=_optional_str(data, "location"),
        notes=_optional_str(data, "notes"),
        source_quote_id=_optional_str(data, "sourceQuoteId"),
        source_name=_optional_str(data, "sourceName"),
        images=list(images),
    )


def parse_return_request(data) -> ReturnRequest:
    data = _body(data)
    return ReturnRequest(
        inventory_id=_required_str(data, "inventoryId"),
        return_reason=_optional_str(data, "returnReason"),
        cosmetic_grade=_optional_str(data, "cosmeticGrade"),
        order_id=_optional_str(data, "orderId"),
        battery_health=_optional_int(data, "batteryHealth", minimum=0, maximum=MAX_BATTERY_HEALTH),
        location=_optional_str(data, "location") if "location" in data else UNSET,
        notes=_optional_str(data, "notes"),
    )
