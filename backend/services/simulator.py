"""
Order simulation: drives fake orders from confirmation to delivery.

One OrderSimulator owns the registry of active orders and is the only
writer of ``current_step``. A single recurring tick walks the registry in
registration order and moves each order at most one stage forward, so
every stage transition is published to subscribers even when the tick
falls behind wall-clock time.
"""
import asyncio
import logging
import random
import threading
import uuid
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence
from config import settings
from core.exceptions import EmptyOrderError, NotFoundError
from models.order import Order, OrderStatus
from models.schemas import CartLine, UserRef
from services.actors import pick_chef, pick_driver, pick_location
from services.geo import driver_position, eta_minutes
from services.pricing import calculate_totals
from services.timeline import due_step, generate_timeline, validate_timeline
from utils.broadcast import Subscribers, Unsubscribe

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
OrderCallback = Callable[[Order], None]

MAP_STATUSES = (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.NEARBY)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderSimulator:
    def __init__(
        self,
        clock: Optional[Clock] = None,
        tick_interval_sec: Optional[float] = None,
        grace_sec: Optional[float] = None,
        history_limit: Optional[int] = None,
        rng: Optional[random.Random] = None,
        autostart: bool = True,
    ) -> None:
        self.clock = clock or utcnow
        self.tick_interval_sec = tick_interval_sec if tick_interval_sec is not None else settings.tick_interval_sec
        self.grace = timedelta(seconds=grace_sec if grace_sec is not None else settings.delivered_grace_sec)
        self.rng = rng or random.Random(settings.random_seed)
        self.autostart = autostart

        # dict keeps registration order, which is also tick order
        self._orders: Dict[str, Order] = {}
        self._history: Deque[Order] = deque(
            maxlen=history_limit if history_limit is not None else settings.order_history_limit
        )
        self._lock = threading.RLock()
        self._all_subscribers = Subscribers()
        self._order_subscribers: Dict[str, Subscribers] = {}
        self._task: Optional[asyncio.Task] = None

    # -------------------- orders --------------------

    def create_fake_order(
        self,
        cart: Sequence[CartLine],
        user: Optional[UserRef] = None,
        promo_code: Optional[str] = None,
    ) -> Order:
        """Register a new order built from a cart snapshot and return a copy of it."""
        if not cart:
            raise EmptyOrderError("Cannot place an order for an empty cart")
        items = [line.model_copy(deep=True) for line in cart]
        created_at = self.clock()
        timeline = generate_timeline(created_at)
        validate_timeline(timeline)

        with self._lock:
            order = Order(
                id=f"ORD-{uuid.uuid4().hex[:12].upper()}",
                created_at=created_at,
                user=user.model_copy() if user is not None else None,
                items=items,
                pricing=calculate_totals(items, promo_code),
                chef=pick_chef(items, self.rng),
                driver=pick_driver(self.rng),
                location=pick_location(self.rng),
                timeline=timeline,
            )
            self._orders[order.id] = order
            snapshot = order.snapshot()

        logger.info(f"Order {order.id} created: {len(items)} line(s), total {order.total:.2f}")
        if self.autostart:
            self.start()
        return snapshot

    def get_order(self, order_id: str) -> Optional[Order]:
        """Snapshot of an active order, or None once it is unknown or evicted"""
        with self._lock:
            order = self._orders.get(order_id)
            return order.snapshot() if order is not None else None

    def require_order(self, order_id: str) -> Order:
        order = self.get_order(order_id)
        if order is None:
            raise NotFoundError(order_id)
        return order

    def list_active(self) -> List[Order]:
        with self._lock:
            return [order.snapshot() for order in self._orders.values()]

    def history(self) -> List[Order]:
        """Evicted orders, newest first"""
        with self._lock:
            return [order.snapshot() for order in reversed(self._history)]

    def find_order(self, order_id: str) -> Optional[Order]:
        """Look an order up among active orders, then history"""
        order = self.get_order(order_id)
        if order is not None:
            return order
        with self._lock:
            for past in self._history:
                if past.id == order_id:
                    return past.snapshot()
        return None

    # -------------------- subscriptions --------------------

    def subscribe(self, order_id: str, callback: OrderCallback) -> Unsubscribe:
        with self._lock:
            subscribers = self._order_subscribers.setdefault(order_id, Subscribers())
            remove = subscribers.add(callback)

        def unsubscribe() -> None:
            with self._lock:
                remove()
                # drop the entry once its last callback is gone, unless it was already replaced
                if not subscribers and self._order_subscribers.get(order_id) is subscribers:
                    del self._order_subscribers[order_id]

        return unsubscribe

    def subscribe_all(self, callback: OrderCallback) -> Unsubscribe:
        return self._all_subscribers.add(callback)

    # -------------------- scheduler --------------------

    def tick(self, now: Optional[datetime] = None) -> List[Order]:
        """Advance every active order by at most one stage and evict expired ones.

        Returns snapshots of the orders that changed stage, in registration order.
        """
        if now is None:
            now = self.clock()
        advanced: List[Order] = []
        with self._lock:
            for order in list(self._orders.values()):
                if order.is_delivered:
                    if order.delivered_at is not None and now - order.delivered_at >= self.grace:
                        self._evict(order)
                    continue
                if due_step(order.timeline, now) > order.current_step:
                    order.current_step += 1
                    if order.is_delivered:
                        order.delivered_at = now
                    logger.info(f"Order {order.id} -> {order.status.value}")
                    advanced.append(order.snapshot())
            for snapshot in advanced:
                self._notify(snapshot)
        return advanced

    def start(self) -> bool:
        """Start the tick loop on the running event loop if it is not already running.

        Without a running loop the simulator is advanced by calling tick() directly.
        """
        if self.is_running:
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; orders advance only on explicit tick()")
            return False
        self._task = loop.create_task(self._run())
        return True

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        logger.info("Order simulation scheduler started")
        while True:
            await asyncio.sleep(self.tick_interval_sec)
            try:
                self.tick()
            except Exception:
                logger.exception("Order simulation tick failed")
            with self._lock:
                if not self._orders:
                    break
        logger.info("Order simulation scheduler idle, no active orders")

    # -------------------- internals --------------------

    def _notify(self, snapshot: Order) -> None:
        subscribers = self._order_subscribers.get(snapshot.id)
        if subscribers is not None:
            subscribers.publish(snapshot)
        self._all_subscribers.publish(snapshot)

    def _evict(self, order: Order) -> None:
        del self._orders[order.id]
        self._order_subscribers.pop(order.id, None)
        self._history.append(order)
        logger.info(f"Order {order.id} evicted after delivery")


def tracking_view(order: Order, now: datetime) -> Dict[str, Any]:
    """Everything a tracking or map screen renders for one order"""
    next_stage = order.next_stage
    return {
        "order_id": order.id,
        "status": order.status.value,
        "current_step": order.current_step,
        "progress_pct": min((order.current_step + 1) / len(order.timeline) * 100, 100.0),
        "current_stage": order.current_stage.model_dump(mode="json"),
        "next_stage": next_stage.model_dump(mode="json") if next_stage is not None else None,
        "driver_position": driver_position(order, now).model_dump(),
        "eta_minutes": eta_minutes(order, now),
        "show_map": order.status in MAP_STATUSES,
    }
