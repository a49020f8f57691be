from fastapi import APIRouter, Depends, HTTPException
from typing import Optional
from core.exceptions import InvalidPromoCodeError
from core.state import get_cart_store
from models.order import PriceBreakdown
from models.schemas import AddItemRequest, CartLine, CartOut, QuantityUpdate
from services.cart_store import CartStore
from services.pricing import calculate_totals

router = APIRouter()

@router.get("/cart", response_model=CartOut)
def get_cart(store: CartStore = Depends(get_cart_store)):
    return store.snapshot()

@router.get("/cart/count")
def get_cart_count(store: CartStore = Depends(get_cart_store)):
    """Badge count"""
    return {"item_count": store.get_item_count()}

@router.get("/cart/totals", response_model=PriceBreakdown)
def get_cart_totals(promo_code: Optional[str] = None, store: CartStore = Depends(get_cart_store)):
    try:
        return calculate_totals(store.items(), promo_code)
    except InvalidPromoCodeError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.post("/cart/items", response_model=CartLine)
def add_cart_item(body: AddItemRequest, store: CartStore = Depends(get_cart_store)):
    return store.add_item(body.item, body.quantity, body.item_type)

@router.patch("/cart/items/{key}", response_model=CartOut)
def update_cart_item(key: str, body: QuantityUpdate, store: CartStore = Depends(get_cart_store)):
    if body.quantity > 0 and store.get_line(key) is None:
        raise HTTPException(status_code=404, detail="Cart line not found")
    store.update_quantity(key, body.quantity)
    return store.snapshot()

@router.delete("/cart/items/{key}", response_model=CartOut)
def remove_cart_item(key: str, store: CartStore = Depends(get_cart_store)):
    store.remove_item(key)
    return store.snapshot()

@router.delete("/cart", response_model=CartOut)
def clear_cart(store: CartStore = Depends(get_cart_store)):
    store.clear()
    return store.snapshot()
