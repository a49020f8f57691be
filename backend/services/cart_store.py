import json
import logging
import threading
from typing import Callable, Dict, List, Optional, TypeVar
from pydantic import ValidationError
from redis import RedisError
from config import settings
from core.exceptions import InvalidQuantityError
from core.redis_client import KeyValueStore
from models.order import Order
from models.schemas import CartLine, CartOut, ItemRef, ItemType, line_key
from utils.broadcast import Subscribers, Unsubscribe

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CartStore:
    """Pending purchase for the current client session.

    Every mutation persists the whole cart and then notifies subscribers
    with a copy of the lines. Persistence is best effort: storage errors
    are logged and the in-memory lines stay authoritative.
    """

    def __init__(self, store: KeyValueStore, storage_key: Optional[str] = None):
        self.store = store
        self.storage_key = storage_key or settings.cart_storage_key
        self._lines: Dict[str, CartLine] = {}
        self._lock = threading.RLock()
        self._subscribers = Subscribers()
        self.load_from_storage()

    # -------------------- mutations --------------------

    def add_item(self, item: ItemRef, quantity: int = 1, item_type: ItemType = ItemType.DISH) -> CartLine:
        """Add ``quantity`` of item, merging into an existing line of the same id and type"""
        if quantity < 1:
            raise InvalidQuantityError(f"quantity must be at least 1, got {quantity}")
        item_type = ItemType(item_type)
        key = line_key(item.id, item_type)
        with self._lock:
            line = self._lines.get(key)
            if line is not None:
                line.quantity += quantity
            else:
                line = CartLine(item=item.model_copy(), item_type=item_type, quantity=quantity)
                self._lines[key] = line
            self._commit()
            return line.model_copy(deep=True)

    def update_quantity(self, key: str, quantity: int) -> Optional[CartLine]:
        """Set a line's quantity exactly; zero or less removes the line"""
        if quantity <= 0:
            self.remove_item(key)
            return None
        with self._lock:
            line = self._lines.get(key)
            if line is None:
                logger.debug(f"Ignoring quantity update for missing cart line {key}")
                return None
            if line.quantity != quantity:
                line.quantity = quantity
                self._commit()
            return line.model_copy(deep=True)

    def remove_item(self, key: str) -> None:
        with self._lock:
            if self._lines.pop(key, None) is not None:
                self._commit()

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()
            self._commit()

    def checkout(self, place: Callable[[List[CartLine]], T]) -> T:
        """Hand the current lines to ``place`` and clear the cart once it succeeds.

        The cart stays locked for the whole call, so no mutation lands between
        reading the lines and clearing them. If ``place`` raises, the cart is untouched.
        """
        with self._lock:
            result = place(self.items())
            self.clear()
            return result

    def reorder(self, order: Order) -> List[CartLine]:
        """Replace the cart with the lines of a past order"""
        with self._lock:
            self.clear()
            for line in order.items:
                self.add_item(line.item, line.quantity, line.item_type)
            return self.items()

    # -------------------- reads --------------------

    def load_from_storage(self) -> List[CartLine]:
        """Return the persisted cart, adopting it as the in-memory state.

        A missing or corrupt entry reads as an empty cart. When storage
        cannot be reached the current in-memory lines are returned.
        """
        with self._lock:
            try:
                raw = self.store.get(self.storage_key)
            except RedisError as e:
                logger.warning(f"Cart storage unavailable, using in-memory cart: {e}")
                return self.items()
            self._lines = self._decode(raw)
            return self.items()

    def items(self) -> List[CartLine]:
        with self._lock:
            return [line.model_copy(deep=True) for line in self._lines.values()]

    def get_line(self, key: str) -> Optional[CartLine]:
        with self._lock:
            line = self._lines.get(key)
            return line.model_copy(deep=True) if line is not None else None

    def snapshot(self) -> CartOut:
        """Lines and badge count read together"""
        with self._lock:
            return CartOut(items=self.items(), item_count=self.get_item_count())

    def get_item_count(self) -> int:
        with self._lock:
            return sum(line.quantity for line in self._lines.values())

    def subtotal(self) -> float:
        with self._lock:
            return sum(line.line_total for line in self._lines.values())

    def subscribe(self, callback: Callable[[List[CartLine]], None]) -> Unsubscribe:
        return self._subscribers.add(callback)

    # -------------------- internals --------------------

    def _commit(self) -> None:
        self._persist()
        self._subscribers.publish(self.items())

    def _persist(self) -> None:
        payload = json.dumps([line.model_dump(mode="json") for line in self._lines.values()])
        try:
            self.store.set(self.storage_key, payload)
        except RedisError as e:
            logger.warning(f"Failed to persist cart: {e}")

    def _decode(self, raw: Optional[str]) -> Dict[str, CartLine]:
        if not raw:
            return {}
        try:
            lines = [CartLine.model_validate(entry) for entry in json.loads(raw)]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Discarding corrupt stored cart: {e}")
            return {}
        decoded: Dict[str, CartLine] = {}
        for line in lines:
            existing = decoded.get(line.key)
            if existing is not None:
                existing.quantity += line.quantity
            else:
                decoded[line.key] = line
        return decoded
