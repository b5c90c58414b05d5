from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime


# Output schema for an individual order line
class OrderItemOut(BaseModel):
    food_item_id: Optional[int] = None
    variant_id: Optional[int] = None
    name: str
    image_url: Optional[str] = None
    quantity: int
    unit_price: float
    line_total: float


# Delivery address as embedded in an order
class OrderAddressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    full_name: str
    phone: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    pincode: str


# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    user_id: int
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    total_amount: float
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut]
    address: Optional[OrderAddressOut] = None


# Customer order tracking page
class OrdersView(BaseModel):
    active: List[OrderResponse]
    past: List[OrderResponse]
    confirmation: Optional[OrderResponse] = None


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: str


# Payment step: chosen address (navigation state) and method
class PaymentRequest(BaseModel):
    address_id: Optional[int] = None
    method: str = "cod"
    notes: Optional[str] = None


# Response schema for a placed order
class PlacementResponse(BaseModel):
    order_id: int
    total_amount: float
    status: str
    payment_status: str
    redirect_to: str
    state: dict
    message: str
