class SimulationError(Exception):
    """Base class for order simulation failures"""


class EmptyOrderError(SimulationError):
    """Raised when an order is requested for a cart with no lines"""


class NotFoundError(SimulationError):
    """Order id is unknown or the order has been evicted"""

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class CartError(Exception):
    pass


class InvalidQuantityError(CartError, ValueError):
    pass


class InvalidPromoCodeError(CartError):
    def __init__(self, code: str):
        super().__init__(f"Invalid promo code: {code}")
        self.code = code
