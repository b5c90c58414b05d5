# backend/schemas/menu.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class VariantOut(ORMBase):
    id: int
    label: str
    price: float


class QuantitySelector(BaseModel):
    selected_variant_id: int
    quantity: int


# Menu card; quantity_selector is absent for items without variants
class MenuCard(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    in_stock: bool
    orderable: bool
    variants: List[VariantOut]
    unavailable_reason: Optional[str] = None
    quantity_selector: Optional[QuantitySelector] = None


class MenuPage(BaseModel):
    categories: List[str]
    selected_category: str
    search: str
    coming_soon: bool
    items: List[MenuCard]


# Admin view of an item with all of its variants
class FoodItemOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    in_stock: bool
    variants: List[VariantOut] = []


class FoodItemUpdate(BaseModel):
    """Schema for PUT requests - fields left out keep their value."""
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    in_stock: Optional[bool] = None


class VariantCreate(BaseModel):
    label: str
    price: float = Field(gt=0)


class VariantUpdate(BaseModel):
    label: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
