from pydantic import BaseModel, Field, computed_field
from typing import List, Optional
from enum import Enum

class ItemType(str, Enum):
    DISH = "dish"
    CLASS = "class"
    CHEF_MARKETPLACE = "chef_marketplace"
    GIVEAWAY = "giveaway"
    LAST_CALL = "last_call"
    LEFTOVERS = "leftovers"
    MEAL_PREP = "meal_prep"
    SURPLUS_GROCERY = "surplus_grocery"

class ItemRef(BaseModel):
    """Snapshot of a sellable item taken when it was added to the cart"""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    photo: Optional[str] = None
    cook_name: Optional[str] = None

class CartLine(BaseModel):
    item: ItemRef
    item_type: ItemType = ItemType.DISH
    quantity: int = Field(..., ge=1)

    @computed_field
    @property
    def key(self) -> str:
        return line_key(self.item.id, self.item_type)

    @computed_field
    @property
    def line_total(self) -> float:
        return self.item.price * self.quantity

def line_key(item_id: str, item_type: ItemType) -> str:
    return f"{ItemType(item_type).value}:{item_id}"

class UserRef(BaseModel):
    id: str
    name: str

class AddItemRequest(BaseModel):
    item: ItemRef
    quantity: int = Field(1, ge=1)
    item_type: ItemType = ItemType.DISH

class QuantityUpdate(BaseModel):
    quantity: int

class CheckoutRequest(BaseModel):
    user: Optional[UserRef] = None
    promo_code: Optional[str] = None

class CartOut(BaseModel):
    items: List[CartLine]
    item_count: int
