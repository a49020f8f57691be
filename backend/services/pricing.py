from typing import Iterable, Optional
from config import settings
from core.exceptions import InvalidPromoCodeError
from models.order import PriceBreakdown
from models.schemas import CartLine

PROMO_CODES = {
    "SAVE10": 0.10,
    "WELCOME15": 0.15,
    "FIRST20": 0.20,
}


def promo_rate(code: Optional[str]) -> float:
    if not code:
        return 0.0
    rate = PROMO_CODES.get(code.strip().upper())
    if rate is None:
        raise InvalidPromoCodeError(code)
    return rate


def calculate_totals(lines: Iterable[CartLine], promo_code: Optional[str] = None) -> PriceBreakdown:
    """Price a set of cart lines.

    Fees only apply to a non-empty subtotal. Delivery is free once the
    discounted subtotal reaches ``free_delivery_threshold``; tax is charged
    on the discounted subtotal plus all fees.
    """
    subtotal = sum(line.line_total for line in lines)
    discount = subtotal * promo_rate(promo_code)
    discounted = subtotal - discount

    service_fee = subtotal * settings.service_fee_rate if subtotal > 0 else 0.0
    processing_fee = settings.processing_fee if subtotal > 0 else 0.0
    if discounted <= 0 or discounted >= settings.free_delivery_threshold:
        delivery_fee = 0.0
    else:
        delivery_fee = settings.delivery_fee
    tax = (discounted + service_fee + processing_fee + delivery_fee) * settings.tax_rate
    total = discounted + service_fee + processing_fee + delivery_fee + tax

    return PriceBreakdown(
        subtotal=round(subtotal, 2),
        discount=round(discount, 2),
        service_fee=round(service_fee, 2),
        processing_fee=round(processing_fee, 2),
        delivery_fee=round(delivery_fee, 2),
        tax=round(tax, 2),
        total=round(total, 2),
        promo_code=promo_code.strip().upper() if promo_code else None,
    )
