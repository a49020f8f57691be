import logging
import math
from datetime import datetime
from typing import Optional
from config import settings
from core.exceptions import SimulationError
from models.order import GeoPoint, Order

logger = logging.getLogger(__name__)


def _clamp(value: float, what: str) -> float:
    if math.isnan(value):
        if settings.debug:
            raise SimulationError(f"{what} is NaN")
        logger.warning(f"{what} is NaN, falling back to 0")
        return 0.0
    return min(1.0, max(0.0, value))


def progress(order: Order, now: datetime) -> float:
    """Elapsed fraction of the order's total duration, clamped to [0, 1]"""
    duration = order.total_duration.total_seconds()
    if duration <= 0:
        if settings.debug:
            raise SimulationError(f"Order {order.id} has a non-positive duration")
        logger.warning(f"Order {order.id} has a non-positive duration")
        return 1.0
    elapsed = (now - order.created_at).total_seconds()
    return _clamp(elapsed / duration, "progress")


def adjusted_progress(order: Order, now: datetime, start_fraction: Optional[float] = None) -> float:
    """Driver progress: 0 until ``start_fraction`` of the order has elapsed, then linear to 1"""
    if start_fraction is None:
        start_fraction = settings.driver_start_fraction
    raw = progress(order, now)
    if start_fraction >= 1:
        return 1.0 if raw >= 1 else 0.0
    return _clamp((raw - start_fraction) / (1 - start_fraction), "adjusted progress")


def driver_position(order: Order, now: datetime, start_fraction: Optional[float] = None) -> GeoPoint:
    adjusted = adjusted_progress(order, now, start_fraction)
    restaurant = order.location.restaurant
    customer = order.location.customer
    if adjusted == 0:
        return restaurant.model_copy()
    if adjusted == 1:
        return customer.model_copy()
    return GeoPoint(
        lat=restaurant.lat + (customer.lat - restaurant.lat) * adjusted,
        lng=restaurant.lng + (customer.lng - restaurant.lng) * adjusted,
    )


def eta_minutes(
    order: Order,
    now: datetime,
    start_fraction: Optional[float] = None,
    max_eta: Optional[int] = None,
) -> int:
    """Minutes until arrival; never below 1 until delivered, 0 afterwards"""
    if max_eta is None:
        max_eta = settings.max_eta_min
    if order.is_delivered or now >= order.timeline[-1].time:
        return 0
    adjusted = adjusted_progress(order, now, start_fraction)
    return max(1, round(max_eta * (1 - adjusted)))
