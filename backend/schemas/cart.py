from pydantic import BaseModel, Field
from typing import List, Optional

# Request schema for adding one unit of an item variant to the cart
class CartAddItem(BaseModel):
    item_id: int
    variant_id: int

# Request schema for setting a line's quantity (0 removes the line)
class CartUpdateItem(BaseModel):
    item_id: int
    variant_id: int
    quantity: int

# Response schema for a single cart line
class CartLineOut(BaseModel):
    item_id: int
    variant_id: int
    name: str
    variant_label: str
    unit_price: float
    quantity: int = Field(ge=1)
    line_total: float
    image_url: Optional[str] = None

# Response schema for the entire cart
class CartOut(BaseModel):
    items: List[CartLineOut]
    total_items: int
    total_amount: float
    message: Optional[str] = None
