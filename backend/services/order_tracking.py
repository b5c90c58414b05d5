# backend/services/order_tracking.py
from typing import Callable, List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from models.order import Order, OrderItem, TERMINAL_STATUSES
from schemas.order import OrderAddressOut, OrderItemOut, OrderResponse
from utils.realtime import ChangeEvent, ChangeFeed, Subscription


class OrderTrackingView:
    """The signed-in customer's orders, newest first, split active / past.

    Read-only: status changes only come from the admin console and show up
    here through the change feed.
    """

    def __init__(self, db: Session, user_id: int, confirmation_order_id: Optional[int] = None):
        self.db = db
        self.user_id = user_id
        self.orders: List[Order] = []
        self._confirmation_order_id = confirmation_order_id
        self._subscriptions: List[Subscription] = []

    def fetch(self) -> List[Order]:
        self.db.expire_all()
        self.orders = (
            self.db.query(Order)
            .options(
                selectinload(Order.items).joinedload(OrderItem.food_item),
                joinedload(Order.address),
            )
            .filter(Order.user_id == self.user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )
        return self.orders

    @property
    def active(self) -> List[Order]:
        return [o for o in self.orders if o.status not in TERMINAL_STATUSES]

    @property
    def past(self) -> List[Order]:
        return [o for o in self.orders if o.status in TERMINAL_STATUSES]

    def take_confirmation(self) -> Optional[Order]:
        # Banner for a just-placed order, shown once
        order_id, self._confirmation_order_id = self._confirmation_order_id, None
        if order_id is None:
            return None
        return next((o for o in self.orders if o.id == order_id), None)

    def subscribe(self, feed: ChangeFeed, callback: Optional[Callable[[ChangeEvent], None]] = None):
        handler = callback or self.handle_change
        self._subscriptions.append(feed.subscribe("orders", handler, row_filter=("user_id", self.user_id)))
        self._subscriptions.append(feed.subscribe("order_items", handler))

    def handle_change(self, change: ChangeEvent) -> List[Order]:
        return self.fetch()

    def close(self):
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []


# Map Order model to OrderResponse schema
def order_to_out(order: Order) -> OrderResponse:
    items: List[OrderItemOut] = []
    for it in order.items:
        item = it.food_item
        items.append(OrderItemOut(
            food_item_id=it.food_item_id,
            variant_id=it.variant_id,
            name=item.name if item else "Removed item",
            image_url=item.image_url if item else None,
            quantity=it.quantity,
            unit_price=it.unit_price,
            line_total=round(it.quantity * it.unit_price, 2),
        ))
    return OrderResponse(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        total_amount=round(order.total_amount, 2),
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=items,
        address=OrderAddressOut.model_validate(order.address) if order.address else None,
    )
