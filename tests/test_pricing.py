"""
Pricing engine: pack/loose buy price selection and document aggregates.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from quotedesk.errors import ValidationError
from quotedesk.pricing import (
    PricingAttributes,
    compute_line_total,
    compute_margin,
    money,
    recompute_document_aggregate,
    select_unit_buy_price,
    to_decimal,
)

D = Decimal

PACKED = PricingAttributes(loose_buy_price=D("76.00"), pack_buy_price=D("70.00"), pack_size=D("60"))


@pytest.mark.parametrize(
    "quantity, expected_price, expected_total",
    [
        ("50", "76.00", "3800.00"),
        ("60", "70.00", "4200.00"),
        ("64", "70.00", "4480.00"),
    ],
)
def test_pack_pricing_scenarios(quantity, expected_price, expected_total):
    price = select_unit_buy_price(D(quantity), PACKED)
    assert price == D(expected_price)
    assert money(compute_line_total(D(quantity), price)) == D(expected_total)


def test_below_pack_size_uses_loose_price():
    for quantity in ("1", "0.5", "59", "59.99"):
        assert select_unit_buy_price(D(quantity), PACKED) == D("76.00")


def test_exactly_pack_size_uses_pack_price():
    assert select_unit_buy_price(D("60"), PACKED) == D("70.00")


@pytest.mark.parametrize(
    "pricing",
    [
        PricingAttributes(loose_buy_price=D("10"), pack_buy_price=None, pack_size=D("5")),
        PricingAttributes(loose_buy_price=D("10"), pack_buy_price=D("8"), pack_size=None),
        PricingAttributes(loose_buy_price=D("10")),
        PricingAttributes(loose_buy_price=D("10"), pack_buy_price=D("8"), pack_size=D("0")),
        PricingAttributes(loose_buy_price=D("10"), pack_buy_price=D("0"), pack_size=D("5")),
    ],
)
def test_missing_pack_fields_always_loose(pricing):
    for quantity in ("1", "5", "500"):
        assert select_unit_buy_price(D(quantity), pricing) == D("10")


def test_pricing_attributes_from_item_reads_optional_fields():
    item = SimpleNamespace(loose_buy_price="76", pack_buy_price="", pack_size=None)
    pricing = PricingAttributes.from_item(item)
    assert pricing.loose_buy_price == D("76")
    assert pricing.pack_buy_price is None
    assert not pricing.has_pack_pricing


def test_quote_line_margin_and_aggregate():
    quantity, sell, buy = D("10"), D("18.00"), D("12.00")
    line = SimpleNamespace(
        line_total=compute_line_total(quantity, sell),
        margin=compute_margin(sell, buy, quantity),
    )
    assert line.line_total == D("180.00")
    assert line.margin == D("60.00")

    aggregate = recompute_document_aggregate([line])
    assert aggregate.total_amount == D("180.00")
    assert aggregate.total_margin == D("60.00")
    assert money(aggregate.margin_percentage) == D("33.33")


def test_margin_can_be_negative():
    assert compute_margin(D("5"), D("8"), D("3")) == D("-9")


def test_aggregate_is_idempotent():
    items = [
        SimpleNamespace(line_total=D("190.00"), margin=D("38.00")),
        SimpleNamespace(line_total=D("180.00"), margin=D("60.00")),
    ]
    assert recompute_document_aggregate(items) == recompute_document_aggregate(items)


def test_zero_total_gives_zero_margin_percentage():
    aggregate = recompute_document_aggregate([])
    assert aggregate.total_amount == D("0")
    assert aggregate.margin_percentage == D("0")

    free = SimpleNamespace(line_total=D("0"), margin=D("-5"))
    assert recompute_document_aggregate([free]).margin_percentage == D("0")


def test_purchase_order_aggregate_has_no_margin():
    items = [SimpleNamespace(line_total=D("3800.00")), SimpleNamespace(line_total=D("20.00"))]
    aggregate = recompute_document_aggregate(items, with_margin=False)
    assert aggregate.total_amount == D("3820.00")
    assert aggregate.total_margin is None
    assert aggregate.margin_percentage is None


def test_floats_enter_through_str():
    assert to_decimal(0.1) + to_decimal(0.2) == D("0.3")


@pytest.mark.parametrize("value", [None, True, "", "abc", "NaN", "Infinity"])
def test_to_decimal_rejects_non_numbers(value):
    with pytest.raises(ValidationError):
        to_decimal(value, "price")


def test_to_decimal_accepts_comma_decimal():
    assert to_decimal("12,50") == D("12.50")
