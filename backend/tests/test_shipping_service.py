from decimal import Decimal

from refurbshop.services.shipping_service import (
    ShippingConfig,
    calculate_gst,
    calculate_shipping,
    compute_totals,
    get_shipping_config,
    save_shipping_config,
)


CONFIG = ShippingConfig(
    rates={"Phone": Decimal("10"), "Tablet": Decimal("15")},
    default_rate=Decimal("10"),
    free_threshold=Decimal("200"),
)


def test_highest_category_rate_applies_once():
    totals = compute_totals(["Phone", "Tablet"], Decimal("180"), Decimal("0"), CONFIG)

    assert totals.subtotal == Decimal("180.00")
    assert totals.shipping == Decimal("15.00")
    assert totals.total == Decimal("195.00")
    assert totals.gst == Decimal("17.73")


def test_free_shipping_at_threshold():
    totals = compute_totals(["Phone", "Tablet"], Decimal("220"), Decimal("0"), CONFIG)

    assert totals.shipping == Decimal("0.00")
    assert totals.total == Decimal("220.00")
    assert totals.gst == Decimal("20.00")


def test_threshold_is_inclusive():
    assert calculate_shipping(["Phone"], Decimal("200.00"), CONFIG) == Decimal("0.00")
    assert calculate_shipping(["Phone"], Decimal("199.99"), CONFIG) == Decimal("10.00")


def test_unknown_category_uses_default_rate():
    config = ShippingConfig(rates={"Tablet": Decimal("15")}, default_rate=Decimal("12.50"))
    assert calculate_shipping(["Watch"], Decimal("50"), config) == Decimal("12.50")


def test_upsell_only_cart_ships_free():
    totals = compute_totals([], Decimal("0"), Decimal("30"), CONFIG)

    assert totals.shipping == Decimal("0.00")
    assert totals.total == Decimal("30.00")


def test_upsells_count_towards_free_threshold():
    totals = compute_totals(["Phone"], Decimal("190"), Decimal("15"), CONFIG)

    assert totals.subtotal == Decimal("205.00")
    assert totals.shipping == Decimal("0.00")


def test_zero_threshold_disables_free_shipping():
    config = ShippingConfig(rates={"Phone": Decimal("10")}, free_threshold=Decimal("0"))
    assert calculate_shipping(["Phone"], Decimal("5000"), config) == Decimal("10.00")


def test_gst_is_one_eleventh_rounded_half_up():
    assert calculate_gst(Decimal("110")) == Decimal("10.00")
    assert calculate_gst(Decimal("195")) == Decimal("17.73")
    assert calculate_gst(Decimal("0.55")) == Decimal("0.05")


def test_config_round_trips_through_settings(db_session):
    assert get_shipping_config().default_rate == Decimal("10.00")

    save_shipping_config(CONFIG)
    db_session.commit()

    loaded = get_shipping_config()
    assert loaded.rates == {"Phone": Decimal("10.00"), "Tablet": Decimal("15.00")}
    assert loaded.free_threshold == Decimal("200.00")
