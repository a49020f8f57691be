from datetime import datetime, timedelta
from enum import Enum as PyEnum
from typing import List, Optional
from pydantic import BaseModel, Field, computed_field
from models.schemas import CartLine, UserRef

class OrderStatus(str, PyEnum):
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    COOKING = "cooking"
    READY = "ready"
    PICKED_UP = "picked_up"
    OUT_FOR_DELIVERY = "out_for_delivery"
    NEARBY = "nearby"
    DELIVERED = "delivered"

class TimelineStage(BaseModel):
    status_key: OrderStatus
    title: str
    subtitle: str
    time: datetime

class GeoPoint(BaseModel):
    lat: float
    lng: float

class OrderLocation(BaseModel):
    restaurant: GeoPoint
    customer: GeoPoint

class Chef(BaseModel):
    name: str
    avatar: str
    rating: float
    specialty: str

class Driver(BaseModel):
    name: str
    avatar: str
    rating: float
    vehicle: str

class PriceBreakdown(BaseModel):
    subtotal: float
    discount: float = 0.0
    service_fee: float = 0.0
    processing_fee: float = 0.0
    delivery_fee: float = 0.0
    tax: float = 0.0
    total: float
    promo_code: Optional[str] = None

class Order(BaseModel):
    id: str
    created_at: datetime
    user: Optional[UserRef] = None
    items: List[CartLine] = Field(..., min_length=1)
    pricing: PriceBreakdown
    chef: Chef
    driver: Driver
    location: OrderLocation
    timeline: List[TimelineStage] = Field(..., min_length=1)
    current_step: int = 0
    delivered_at: Optional[datetime] = None

    @computed_field
    @property
    def status(self) -> OrderStatus:
        return self.timeline[self.current_step].status_key

    @computed_field
    @property
    def total(self) -> float:
        return self.pricing.total

    @property
    def last_step(self) -> int:
        return len(self.timeline) - 1

    @property
    def is_delivered(self) -> bool:
        return self.current_step >= self.last_step

    @property
    def total_duration(self) -> timedelta:
        return self.timeline[-1].time - self.created_at

    @property
    def current_stage(self) -> TimelineStage:
        return self.timeline[self.current_step]

    @property
    def next_stage(self) -> Optional[TimelineStage]:
        if self.is_delivered:
            return None
        return self.timeline[self.current_step + 1]

    def snapshot(self) -> "Order":
        """Deep copy safe to hand to readers outside the simulator"""
        return self.model_copy(deep=True)
