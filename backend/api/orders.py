from fastapi import APIRouter, Depends, HTTPException
from typing import List
import logging
from core.exceptions import EmptyOrderError, InvalidPromoCodeError, NotFoundError
from core.state import get_cart_store, get_simulator
from models.order import Order
from models.schemas import CartLine, CheckoutRequest
from services.cart_store import CartStore
from services.simulator import OrderSimulator, tracking_view

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/checkout", response_model=Order)
async def checkout(
    body: CheckoutRequest,
    store: CartStore = Depends(get_cart_store),
    simulator: OrderSimulator = Depends(get_simulator),
):
    """Place the current cart as a simulated order and empty the cart"""
    try:
        order = store.checkout(
            lambda lines: simulator.create_fake_order(lines, body.user, body.promo_code)
        )
    except EmptyOrderError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidPromoCodeError as e:
        # cart is left as it was so the user can fix the code
        raise HTTPException(status_code=400, detail=str(e))
    return order

@router.get("/orders/active", response_model=List[Order])
async def list_active_orders(simulator: OrderSimulator = Depends(get_simulator)):
    return simulator.list_active()

@router.get("/orders/history", response_model=List[Order])
async def order_history(simulator: OrderSimulator = Depends(get_simulator)):
    """Active and recently delivered orders, newest first"""
    orders = simulator.list_active() + simulator.history()
    return sorted(orders, key=lambda o: o.created_at, reverse=True)

@router.get("/orders/{order_id}", response_model=Order)
async def get_order(order_id: str, simulator: OrderSimulator = Depends(get_simulator)):
    try:
        return simulator.require_order(order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.get("/orders/{order_id}/tracking")
async def track_order(order_id: str, simulator: OrderSimulator = Depends(get_simulator)):
    """Tracking / live map view model"""
    try:
        order = simulator.require_order(order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return tracking_view(order, simulator.clock())

@router.post("/orders/{order_id}/reorder", response_model=List[CartLine])
async def reorder(
    order_id: str,
    store: CartStore = Depends(get_cart_store),
    simulator: OrderSimulator = Depends(get_simulator),
):
    order = simulator.find_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    logger.info(f"Reordering {order_id} into cart")
    return store.reorder(order)
