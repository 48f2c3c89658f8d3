from pydantic import BaseModel, Field
from typing import List, Optional

# Cart operations are pure: every function returns a new list and leaves the input untouched.


class CartItem(BaseModel):
    id: str
    product_id: str
    title: str
    price: int = Field(ge=0)
    compare_at_price: Optional[int] = None
    quantity: int = Field(default=1, ge=1)
    image: Optional[str] = None
    slug: Optional[str] = None
    sku: Optional[str] = None
    max_quantity: Optional[int] = None  # inventory cap
    model_config = {"frozen": True}


def _clamp(quantity: int, max_quantity: Optional[int]) -> int:
    if max_quantity is None:
        return quantity
    return min(quantity, max_quantity)


def add_item(items: List[CartItem], item: CartItem, quantity: Optional[int] = None) -> List[CartItem]:
    qty = quantity if quantity is not None else item.quantity
    existing = get_item(items, item.id)
    if existing is None:
        return [*items, item.model_copy(update={"quantity": _clamp(qty, item.max_quantity)})]
    merged = _clamp(existing.quantity + qty, item.max_quantity)
    return [i.model_copy(update={"quantity": merged}) if i.id == item.id else i for i in items]


def remove_item(items: List[CartItem], item_id: str) -> List[CartItem]:
    return [i for i in items if i.id != item_id]


def update_quantity(items: List[CartItem], item_id: str, quantity: int) -> List[CartItem]:
    if quantity <= 0:
        return remove_item(items, item_id)
    return [
        i.model_copy(update={"quantity": _clamp(quantity, i.max_quantity)}) if i.id == item_id else i
        for i in items
    ]


def clear_cart(items: List[CartItem]) -> List[CartItem]:
    return []


def cart_total(items: List[CartItem]) -> int:
    return sum(i.price * i.quantity for i in items)


def item_count(items: List[CartItem]) -> int:
    return sum(i.quantity for i in items)


def get_item(items: List[CartItem], item_id: str) -> Optional[CartItem]:
    return next((i for i in items if i.id == item_id), None)
