# Process-wide engine instances shared by every view.
# Routers reach them through the getters so tests can swap in isolated instances.
from functools import lru_cache
from core.redis_client import KeyValueStore
from services.cart_store import CartStore
from services.simulator import OrderSimulator

simulator = OrderSimulator()

def get_simulator() -> OrderSimulator:
    return simulator

@lru_cache(maxsize=1)
def get_cart_store() -> CartStore:
    """Created on first use so importing the app never touches Redis"""
    return CartStore(KeyValueStore())
