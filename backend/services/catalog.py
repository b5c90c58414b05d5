# backend/services/catalog.py
from typing import Callable, List, Optional

from sqlalchemy.orm import Session, selectinload

from models.menu import FoodItem
from services.cart_store import CartStore
from utils.realtime import ChangeEvent, ChangeFeed, ChangeType, Subscription

ALL_CATEGORIES = "All"
# Category shown as a "coming soon" page instead of a grid
COMING_SOON_CATEGORY = "Snacks"

MENU_NOTIFICATIONS = {
    ChangeType.INSERT: "New item added to menu!",
    ChangeType.UPDATE: "Menu item updated!",
    ChangeType.DELETE: "Item removed from menu!",
}


class CatalogView:
    """Menu items with their variants, filtered client-side.

    ``filtered`` is recomputed from the current search text, category and
    item list on every read. Change notifications trigger a full re-fetch.
    """

    def __init__(self, db: Session, search: str = "", category: Optional[str] = None):
        self.db = db
        self.search = search or ""
        self.category = category or ALL_CATEGORIES
        self.items: List[FoodItem] = []
        self.notifications: List[str] = []
        self._subscriptions: List[Subscription] = []

    def fetch(self) -> List[FoodItem]:
        self.db.expire_all()
        self.items = (
            self.db.query(FoodItem)
            .options(selectinload(FoodItem.variants))
            .order_by(FoodItem.created_at.desc(), FoodItem.id.desc())
            .all()
        )
        return self.items

    @property
    def categories(self) -> List[str]:
        seen = [ALL_CATEGORIES]
        for item in self.items:
            if item.category and item.category not in seen:
                seen.append(item.category)
        if COMING_SOON_CATEGORY not in seen:
            seen.append(COMING_SOON_CATEGORY)
        return seen

    @property
    def coming_soon(self) -> bool:
        return self.category == COMING_SOON_CATEGORY

    @property
    def filtered(self) -> List[FoodItem]:
        result = self.items
        term = self.search.strip().lower()
        if term:
            result = [
                item for item in result
                if term in item.name.lower()
                or (item.category and term in item.category.lower())
                or (item.description and term in item.description.lower())
            ]
        if self.category != ALL_CATEGORIES:
            result = [item for item in result if item.category == self.category]
        return result

    def subscribe(self, feed: ChangeFeed, callback: Optional[Callable[[ChangeEvent], None]] = None):
        self._subscriptions.append(feed.subscribe("food_items", callback or self.handle_change))

    def handle_change(self, change: ChangeEvent) -> str:
        self.fetch()
        message = MENU_NOTIFICATIONS[change.type]
        self.notifications.append(message)
        return message

    def close(self):
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []


def menu_card(item: FoodItem, cart: Optional[CartStore] = None) -> dict:
    """Card payload; items without variants get no quantity selector."""
    card = {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "image_url": item.image_url,
        "category": item.category,
        "in_stock": bool(item.in_stock),
        "orderable": item.orderable,
        "variants": [{"id": v.id, "label": v.label, "price": v.price} for v in item.variants],
        "unavailable_reason": None,
        "quantity_selector": None,
    }
    if not item.orderable:
        card["unavailable_reason"] = "No variants available"
        return card
    if not item.in_stock:
        card["unavailable_reason"] = "Out of Stock"

    selected = item.variants[0]
    card["quantity_selector"] = {
        "selected_variant_id": selected.id,
        "quantity": cart.quantity_of(item.id, selected.id) if cart else 0,
    }
    return card
