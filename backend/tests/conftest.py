import random
from datetime import datetime, timedelta, timezone

import fakeredis
import pytest
from fastapi.testclient import TestClient

from core.redis_client import KeyValueStore
from core.state import get_cart_store, get_simulator
from main import app
from models.schemas import ItemRef, ItemType
from services.cart_store import CartStore
from services.simulator import OrderSimulator

T0 = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class ManualClock:
    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def kv_store():
    return KeyValueStore(fakeredis.FakeRedis(decode_responses=True), ttl=0)


@pytest.fixture
def cart(kv_store):
    return CartStore(kv_store, storage_key="test:cart")


@pytest.fixture
def simulator(clock):
    return OrderSimulator(clock=clock, grace_sec=60, history_limit=5, rng=random.Random(7), autostart=False)


@pytest.fixture
def dish():
    return ItemRef(id="d1", name="Shakshuka", price=10.0, cook_name="Maya Levi")


@pytest.fixture
def filled_cart(cart, dish):
    cart.add_item(dish, 2, ItemType.DISH)
    cart.add_item(ItemRef(id="c1", name="Pasta Class", price=35.0), 1, ItemType.CLASS)
    return cart


@pytest.fixture
def client(cart, simulator):
    app.dependency_overrides[get_cart_store] = lambda: cart
    app.dependency_overrides[get_simulator] = lambda: simulator
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def run_until(simulator: OrderSimulator, clock: ManualClock, seconds: int, step: float = 1.0):
    """Tick once per ``step`` seconds of simulated time; returns every published transition"""
    advanced = []
    elapsed = 0.0
    while elapsed < seconds:
        elapsed += step
        advanced.extend(simulator.tick(clock.advance(step)))
    return advanced
