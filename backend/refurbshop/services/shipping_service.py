# Overview: Shipping, GST and order totals. Pure functions plus the settings loader.

"""
Shipping & Totals

- One shipment covers the whole order: a mixed cart pays the HIGHEST
  applicable category rate, rates are never summed.
- Free shipping when free_threshold > 0 and subtotal >= free_threshold.
- Empty category list (upsell-only cart) ships free.
- GST is the tax already inside a GST-inclusive total: total / 11.
  It is reported, never added.
- Every monetary output is rounded to cents, half-up.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from ..extensions import db
from ..models import Setting
from ..money import ZERO, to_money


SHIPPING_SETTING_KEY = "shipping"
DEFAULT_RATE = Decimal("10.00")
DEFAULT_CATEGORY = "Phone"


@dataclass(frozen=True)
class ShippingConfig:
    rates: dict[str, Decimal] = field(default_factory=dict)
    default_rate: Decimal = DEFAULT_RATE
    free_threshold: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: dict | None) -> "ShippingConfig":
        data = data or {}
        rates = {str(cat): to_money(rate) for cat, rate in (data.get("rates") or {}).items()}
        default_rate = data.get("default_rate")
        return cls(
            rates=rates,
            default_rate=to_money(default_rate) if default_rate is not None else DEFAULT_RATE,
            free_threshold=to_money(data.get("free_threshold") or 0),
        )

    def to_dict(self) -> dict:
        return {
            "rates": {cat: float(rate) for cat, rate in self.rates.items()},
            "default_rate": float(self.default_rate),
            "free_threshold": float(self.free_threshold),
        }


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping: Decimal
    gst: Decimal
    total: Decimal


def calculate_shipping(categories: Iterable[str], subtotal, config: ShippingConfig) -> Decimal:
    """Flat shipment fee: the highest category rate in the cart, or 0."""
    categories = list(categories)
    if not categories:
        return ZERO

    subtotal = to_money(subtotal)
    if config.free_threshold > 0 and subtotal >= config.free_threshold:
        return ZERO

    return to_money(max(config.rates.get(cat, config.default_rate) for cat in categories))


def calculate_gst(gst_inclusive_total) -> Decimal:
    """GST component of a GST-inclusive amount (10% GST => amount / 11)."""
    return to_money(to_money(gst_inclusive_total) / 11)


def compute_totals(
    categories: Iterable[str],
    inventory_subtotal,
    upsell_subtotal,
    config: ShippingConfig,
) -> OrderTotals:
    subtotal = to_money(to_money(inventory_subtotal) + to_money(upsell_subtotal))
    shipping = calculate_shipping(categories, subtotal, config)
    total = to_money(subtotal + shipping)
    return OrderTotals(
        subtotal=subtotal,
        shipping=shipping,
        gst=calculate_gst(total),
        total=total,
    )


def get_shipping_config() -> ShippingConfig:
    """Load the storefront shipping table, falling back to defaults."""
    setting = db.session.get(Setting, SHIPPING_SETTING_KEY)
    return ShippingConfig.from_dict(setting.value if setting else None)


def save_shipping_config(config: ShippingConfig) -> ShippingConfig:
    """Persist the shipping table (used by CLI and test fixtures). Does not commit."""
    setting = db.session.get(Setting, SHIPPING_SETTING_KEY)
    if setting is None:
        setting = Setting(key=SHIPPING_SETTING_KEY, value=config.to_dict())
        db.session.add(setting)
    else:
        setting.value = config.to_dict()
    return config
