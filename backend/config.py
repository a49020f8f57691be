from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    redis_url: str = "redis://localhost:6379/0"
    cart_storage_key: str = "dishdash:cart"
    cart_ttl_sec: int = 86400

    # simulation
    tick_interval_sec: float = 1.0
    driver_start_fraction: float = 0.4
    max_eta_min: int = 8
    delivered_grace_sec: float = 60.0
    order_history_limit: int = 20
    random_seed: Optional[int] = None

    # pricing
    service_fee_rate: float = 0.05
    processing_fee: float = 1.99
    delivery_fee: float = 2.99
    free_delivery_threshold: float = 25.0
    tax_rate: float = 0.08

    debug: bool = False

    class Config:
        env_file = ".env"

settings = Settings()
