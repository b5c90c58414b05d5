# backend/services/cart_store.py
"""Per-user shopping cart kept in memory for the browsing session."""
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple

from config import settings


@dataclass
class CartLine:
    item_id: int
    variant_id: int
    name: str
    variant_label: str
    unit_price: float
    quantity: int = 1
    image_url: Optional[str] = None

    @property
    def key(self) -> Tuple[int, int]:
        return (self.item_id, self.variant_id)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


class CartStore:
    """Lines keyed by (item id, variant id).

    Totals are derived on every read. No operation raises: updating or
    removing a key that is not in the cart leaves it untouched.
    """

    def __init__(self):
        self.lines: List[CartLine] = []
        self._lock = threading.RLock()

    def _find(self, item_id: int, variant_id: int) -> Optional[CartLine]:
        for line in self.lines:
            if line.key == (item_id, variant_id):
                return line
        return None

    def add_item(self, item, variant) -> CartLine:
        # Stock is checked by the caller
        with self._lock:
            line = self._find(item.id, variant.id)
            if line:
                line.quantity += 1
                return line
            line = CartLine(
                item_id=item.id,
                variant_id=variant.id,
                name=item.name,
                variant_label=variant.label,
                unit_price=variant.price,
                image_url=item.image_url,
            )
            self.lines.append(line)
            return line

    def update_quantity(self, item_id: int, variant_id: int, quantity: int):
        with self._lock:
            if quantity <= 0:
                self.remove_item(item_id, variant_id)
                return
            line = self._find(item_id, variant_id)
            if line:
                line.quantity = quantity

    def remove_item(self, item_id: int, variant_id: int):
        with self._lock:
            self.lines = [line for line in self.lines if line.key != (item_id, variant_id)]

    def clear(self):
        with self._lock:
            self.lines = []

    def snapshot(self) -> List[CartLine]:
        """Copies of the current lines; later cart edits do not touch them."""
        with self._lock:
            return [replace(line) for line in self.lines]

    def quantity_of(self, item_id: int, variant_id: int) -> int:
        line = self._find(item_id, variant_id)
        return line.quantity if line else 0

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def total_amount(self) -> float:
        return sum(line.unit_price * line.quantity for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines


class CartRegistry:
    """Carts of the signed-in users.

    A cart is dropped when its owner signs out, or once it has not been
    used for ``max_idle`` seconds (by default the access token lifetime).
    """

    def __init__(self, max_idle: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.max_idle = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60 if max_idle is None else max_idle
        self.clock = clock
        self._carts: Dict[int, CartStore] = {}
        self._touched: Dict[int, float] = {}
        self._lock = threading.Lock()

    def _prune(self, now: float):
        for user_id, touched in list(self._touched.items()):
            if now - touched > self.max_idle:
                self._carts.pop(user_id, None)
                del self._touched[user_id]

    def get(self, user_id: int) -> CartStore:
        with self._lock:
            now = self.clock()
            self._prune(now)
            cart = self._carts.get(user_id)
            if cart is None:
                cart = self._carts[user_id] = CartStore()
            self._touched[user_id] = now
            return cart

    def peek(self, user_id: int) -> Optional[CartStore]:
        with self._lock:
            self._prune(self.clock())
            return self._carts.get(user_id)

    def discard(self, user_id: int):
        with self._lock:
            self._carts.pop(user_id, None)
            self._touched.pop(user_id, None)

    def clear(self):
        with self._lock:
            self._carts.clear()
            self._touched.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._carts)


carts = CartRegistry()
