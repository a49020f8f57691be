from typing import Any, Callable, Dict, List, Tuple
import json
import logging
import threading

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


class Subscribers:
    """Ordered list of callbacks invoked synchronously on publish.

    A failing callback is logged and skipped; the remaining callbacks still run.
    """

    def __init__(self) -> None:
        self._callbacks: List[Tuple[object, Callable[..., Any]]] = []
        self._lock = threading.Lock()

    def add(self, callback: Callable[..., Any]) -> Unsubscribe:
        # unique handle so the same function can be registered twice and removed independently
        handle = (object(), callback)
        with self._lock:
            self._callbacks.append(handle)

        def unsubscribe() -> None:
            with self._lock:
                if handle in self._callbacks:
                    self._callbacks.remove(handle)

        return unsubscribe

    def publish(self, *args: Any) -> None:
        with self._lock:
            handles = self._callbacks[:]
        for _, callback in handles:
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed")

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)


# Global websocket connections for the order views
order_connections = []

async def broadcast_orders(event: str, data: Dict[str, Any]):
    """Broadcast to all order tracking WebSocket clients"""
    message = json.dumps({"event": event, "data": data})
    for conn in order_connections[:]:
        try:
            await conn.send_text(message)
        except Exception:
            logger.info("Dropping closed order websocket")
            if conn in order_connections:
                order_connections.remove(conn)
