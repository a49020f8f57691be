import redis
from typing import Optional
from config import settings

redis_client = redis.Redis.from_url(settings.redis_url, decode_responses=True)

def test_connection() -> bool:
    try:
        return redis_client.ping()
    except redis.RedisError:
        return False


class KeyValueStore:
    """Durable key-value storage for client state (cart contents).

    Errors from the server are NOT swallowed here; callers decide whether
    a failed read/write is fatal.
    """

    def __init__(self, client: Optional[redis.Redis] = None, ttl: Optional[int] = None):
        self.client = client if client is not None else redis_client
        self.ttl = settings.cart_ttl_sec if ttl is None else ttl

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def set(self, key: str, value: str) -> None:
        """Store value, refreshing the session TTL when one is configured"""
        if self.ttl:
            self.client.setex(key, self.ttl, value)
        else:
            self.client.set(key, value)

    def remove(self, key: str) -> None:
        self.client.delete(key)
