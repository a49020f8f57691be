import pytest

from core.exceptions import InvalidPromoCodeError
from models.schemas import CartLine, ItemRef
from services.pricing import calculate_totals


def lines(*prices_and_qty):
    return [
        CartLine(item=ItemRef(id=f"i{n}", name=f"Item {n}", price=price), quantity=qty)
        for n, (price, qty) in enumerate(prices_and_qty)
    ]


def test_small_order_pays_delivery():
    totals = calculate_totals(lines((10.0, 2)))
    assert totals.subtotal == 20.0
    assert totals.service_fee == 1.0
    assert totals.processing_fee == 1.99
    assert totals.delivery_fee == 2.99
    assert totals.tax == pytest.approx((20 + 1 + 1.99 + 2.99) * 0.08, abs=0.01)
    assert totals.total == pytest.approx(20 + 1 + 1.99 + 2.99 + totals.tax, abs=0.01)


def test_delivery_free_from_threshold():
    assert calculate_totals(lines((25.0, 1))).delivery_fee == 0


def test_promo_discount_applies_before_delivery_threshold():
    totals = calculate_totals(lines((26.0, 1)), promo_code="save10")
    assert totals.discount == 2.6
    assert totals.promo_code == "SAVE10"
    # 23.40 after discount is below the free delivery threshold
    assert totals.delivery_fee == 2.99


def test_empty_cart_has_no_fees():
    totals = calculate_totals([])
    assert totals.total == 0
    assert totals.processing_fee == 0


def test_unknown_promo_code():
    with pytest.raises(InvalidPromoCodeError):
        calculate_totals(lines((10.0, 1)), promo_code="FREEFOOD")
