from pydantic import BaseModel, ConfigDict
from typing import Any, List, Optional
from datetime import datetime

from schemas.menu import FoodItemOut
from schemas.order import OrderResponse


# Dashboard counters
class DashboardStats(BaseModel):
    total_orders: int = 0
    ongoing_orders: int = 0
    completed_orders: int = 0
    total_revenue: float = 0.0


class AdminOverview(BaseModel):
    stats: DashboardStats
    orders: List[OrderResponse]
    items: List[FoodItemOut]


class StatusChangeResponse(BaseModel):
    order: OrderResponse
    stats: DashboardStats
    message: str


class StockToggleResponse(BaseModel):
    item: FoodItemOut
    message: str


class LogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: datetime
    meta: Optional[Any] = None


class LogPage(BaseModel):
    items: List[LogResponse]
    total: int
    page: int
    page_size: int
