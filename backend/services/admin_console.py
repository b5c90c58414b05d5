# backend/services/admin_console.py
"""Back-office view over all orders and the whole menu.

Orders may move between any of the six statuses; no transition graph is
enforced. A status write is mirrored into the loaded rows right away and
the dashboard counters are re-fetched afterwards.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from fastapi import Request
from sqlalchemy.orm import Session, joinedload, selectinload

from models.menu import FoodItem, FoodItemVariant
from models.order import Order, OrderItem, OrderStatus, TERMINAL_STATUSES
from schemas.admin import DashboardStats
from schemas.order import OrderResponse
from services.order_tracking import order_to_out
from utils.audit import write_log, client_ip
from utils.errors import NotFound, ValidationFailed
from utils.realtime import ChangeEvent, ChangeFeed, Subscription

logger = logging.getLogger(__name__)

ORDER_STATUSES = [s.value for s in OrderStatus]


def format_status(status: str) -> str:
    return status.replace("_", " ").title()


# Feed table -> the data it invalidates
REFRESH_CHANNELS = {
    "orders": "orders",
    "order_items": "orders",
    "food_items": "items",
    "food_item_variants": "variants",
}


class AdminConsole:
    def __init__(self, db: Session, user_id: Optional[int] = None, request: Optional[Request] = None):
        self.db = db
        self.user_id = user_id
        self.request = request
        self.orders: List[OrderResponse] = []
        self.items: List[FoodItem] = []
        self.variants: List[FoodItemVariant] = []
        self.stats = DashboardStats()
        self._subscriptions: List[Subscription] = []

    def _audit(self, action: str, resource: str, **meta):
        write_log(self.db, user_id=self.user_id, action=action, resource=resource,
                  status="SUCCESS", ip=client_ip(self.request), meta=meta)

    # ---- fetches ----

    def fetch_orders(self) -> List[OrderResponse]:
        self.db.expire_all()
        rows = (
            self.db.query(Order)
            .options(
                selectinload(Order.items).joinedload(OrderItem.food_item),
                joinedload(Order.address),
            )
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )
        self.orders = [order_to_out(o) for o in rows]
        return self.orders

    def fetch_items(self) -> List[FoodItem]:
        self.db.expire_all()
        self.items = (
            self.db.query(FoodItem)
            .options(selectinload(FoodItem.variants))
            .order_by(FoodItem.created_at.desc(), FoodItem.id.desc())
            .all()
        )
        return self.items

    def fetch_variants(self) -> List[FoodItemVariant]:
        self.db.expire_all()
        self.variants = self.db.query(FoodItemVariant).order_by(FoodItemVariant.food_item_id, FoodItemVariant.id).all()
        return self.variants

    def fetch_stats(self) -> DashboardStats:
        rows = self.db.query(Order.status, Order.total_amount).all()
        self.stats = DashboardStats(
            total_orders=len(rows),
            ongoing_orders=sum(1 for status, _ in rows if status not in TERMINAL_STATUSES),
            completed_orders=sum(1 for status, _ in rows if status == OrderStatus.DELIVERED.value),
            total_revenue=round(sum(float(total or 0) for _, total in rows), 2),
        )
        return self.stats

    def refresh(self):
        self.fetch_orders()
        self.fetch_items()
        self.fetch_variants()
        self.fetch_stats()

    def variants_for(self, item_id: int) -> List[FoodItemVariant]:
        return [v for v in self.variants if v.food_item_id == item_id]

    # ---- orders ----

    def update_order_status(self, order_id: int, new_status: str) -> OrderResponse:
        if new_status not in ORDER_STATUSES:
            raise ValidationFailed(f"Unknown order status: {new_status}")

        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFound("Order not found")

        old_status = order.status
        now = datetime.now(timezone.utc)
        order.status = new_status
        order.updated_at = now
        self.db.commit()
        self._audit("ORDER_STATUS_CHANGE", "orders", order_id=order_id, old=old_status, new=new_status)

        # Mirror the write into the loaded rows before the next re-fetch
        patched = None
        for row in self.orders:
            if row.id == order_id:
                row.status = new_status
                row.updated_at = now
                patched = row
        if patched is None:
            self.db.refresh(order)
            patched = order_to_out(order)
            self.orders.insert(0, patched)

        self.fetch_stats()
        return patched

    # ---- menu items ----

    def _item(self, item_id: int) -> FoodItem:
        item = self.db.query(FoodItem).filter(FoodItem.id == item_id).first()
        if not item:
            raise NotFound("Food item not found")
        return item

    def create_item(self, name: str, description: Optional[str] = None, category: Optional[str] = None,
                    image_url: Optional[str] = None) -> FoodItem:
        if not (name or "").strip():
            raise ValidationFailed("Please fill in all required fields")
        item = FoodItem(
            name=name.strip(),
            description=description,
            category=category,
            image_url=image_url or "/placeholder.svg",
            in_stock=True,
        )
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        self._audit("ITEM_CREATE", "menu", item_id=item.id, name=item.name)
        self.fetch_items()
        return item

    def update_item(self, item_id: int, **fields) -> FoodItem:
        item = self._item(item_id)
        if "name" in fields and not (fields["name"] or "").strip():
            raise ValidationFailed("Please fill in all required fields")
        for key in ("name", "description", "category", "image_url", "in_stock"):
            if key in fields and fields[key] is not None:
                setattr(item, key, fields[key])
        item.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(item)
        self._audit("ITEM_UPDATE", "menu", item_id=item.id)
        self.fetch_items()
        return item

    def delete_item(self, item_id: int):
        item = self._item(item_id)
        self.db.delete(item)
        self.db.commit()
        self._audit("ITEM_DELETE", "menu", item_id=item_id)
        self.fetch_items()

    def toggle_stock(self, item_id: int):
        item = self._item(item_id)
        item.in_stock = not item.in_stock
        item.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(item)
        message = "Item marked as available" if item.in_stock else "Item marked as out of stock"
        self._audit("ITEM_STOCK", "menu", item_id=item.id, in_stock=item.in_stock)
        self.fetch_items()
        return item, message

    # ---- variants ----

    def _variant(self, variant_id: int) -> FoodItemVariant:
        variant = self.db.query(FoodItemVariant).filter(FoodItemVariant.id == variant_id).first()
        if not variant:
            raise NotFound("Variant not found")
        return variant

    @staticmethod
    def _check_variant(label: Optional[str], price: Optional[float]):
        if not (label or "").strip() or price is None or price <= 0:
            raise ValidationFailed("Please fill in all required fields")

    def create_variant(self, item_id: int, label: str, price: float) -> FoodItemVariant:
        self._check_variant(label, price)
        item = self._item(item_id)
        variant = FoodItemVariant(food_item_id=item.id, label=label.strip(), price=price)
        self.db.add(variant)
        self.db.commit()
        self.db.refresh(variant)
        self._audit("VARIANT_CREATE", "menu", item_id=item.id, variant_id=variant.id)
        self.fetch_variants()
        return variant

    def update_variant(self, variant_id: int, label: Optional[str] = None, price: Optional[float] = None) -> FoodItemVariant:
        variant = self._variant(variant_id)
        self._check_variant(label if label is not None else variant.label,
                            price if price is not None else variant.price)
        if label is not None:
            variant.label = label.strip()
        if price is not None:
            variant.price = price
        self.db.commit()
        self.db.refresh(variant)
        self._audit("VARIANT_UPDATE", "menu", variant_id=variant.id)
        self.fetch_variants()
        return variant

    def delete_variant(self, variant_id: int):
        variant = self._variant(variant_id)
        self.db.delete(variant)
        self.db.commit()
        self._audit("VARIANT_DELETE", "menu", variant_id=variant_id)
        self.fetch_variants()

    # ---- live updates ----

    def subscribe(self, feed: ChangeFeed, callback: Optional[Callable[[ChangeEvent], None]] = None):
        handler = callback or self.handle_change
        for table in REFRESH_CHANNELS:
            self._subscriptions.append(feed.subscribe(table, handler))

    def handle_change(self, change: ChangeEvent) -> str:
        channel = REFRESH_CHANNELS[change.table]
        if channel == "orders":
            self.fetch_orders()
            self.fetch_stats()
        elif channel == "items":
            self.fetch_items()
        else:
            self.fetch_variants()
        return channel

    def close(self):
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []
