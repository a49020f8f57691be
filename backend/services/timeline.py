from datetime import datetime, timedelta
from typing import List, Sequence
from models.order import OrderStatus, TimelineStage

# (status, seconds after placement, title, subtitle)
STAGE_TABLE = [
    (OrderStatus.CONFIRMED, 0, "Order Confirmed", "The chef has received your order"),
    (OrderStatus.PREPARING, 30, "Preparing", "Ingredients are being prepped"),
    (OrderStatus.COOKING, 90, "Cooking", "Your meal is on the stove"),
    (OrderStatus.READY, 180, "Ready for Pickup", "Packed and waiting for the driver"),
    (OrderStatus.PICKED_UP, 240, "Picked Up", "The driver has your order"),
    (OrderStatus.OUT_FOR_DELIVERY, 300, "Out for Delivery", "On the way to you"),
    (OrderStatus.NEARBY, 420, "Nearby", "Your driver is almost there"),
    (OrderStatus.DELIVERED, 480, "Delivered", "Enjoy your meal!"),
]

TOTAL_DURATION = timedelta(seconds=STAGE_TABLE[-1][1])


def generate_timeline(created_at: datetime) -> List[TimelineStage]:
    """Build the fixed stage sequence for an order placed at ``created_at``.

    Deterministic: the same instant always yields an identical list.
    """
    return [
        TimelineStage(
            status_key=status,
            title=title,
            subtitle=subtitle,
            time=created_at + timedelta(seconds=offset),
        )
        for status, offset, title, subtitle in STAGE_TABLE
    ]


def validate_timeline(timeline: Sequence[TimelineStage]) -> None:
    """Raise ValueError unless stages are strictly time ordered and follow OrderStatus order"""
    if not timeline:
        raise ValueError("timeline is empty")
    expected = list(OrderStatus)
    keys = [stage.status_key for stage in timeline]
    if keys != expected[:len(keys)]:
        raise ValueError(f"timeline stages out of order: {[k.value for k in keys]}")
    for prev, cur in zip(timeline, timeline[1:]):
        if cur.time <= prev.time:
            raise ValueError(f"stage {cur.status_key.value} is not after {prev.status_key.value}")


def due_step(timeline: Sequence[TimelineStage], now: datetime) -> int:
    """Index of the latest stage whose start time has passed (0 before placement)"""
    step = 0
    for index, stage in enumerate(timeline):
        if stage.time <= now:
            step = index
        else:
            break
    return step
