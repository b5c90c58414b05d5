# backend/services/checkout.py
"""Checkout: address selection, payment choice, order placement.

Placement writes the order header and its lines as two separate commits.
When the second write fails the header stays behind without lines; the
failure is logged and reported, nothing is rolled back or retried.
"""
import asyncio
import enum
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.address import Address
from models.order import Order, OrderItem, OrderStatus, PaymentStatus
from services.cart_store import CartLine, CartStore
from utils.audit import write_log, client_ip
from utils.errors import (
    NavigationRedirect, NotFound, PartialOrderFailure, PaymentFailed,
    RemoteCallError, ValidationFailed,
)

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("full_name", "phone", "address_line1", "address_line2", "city", "state", "pincode")


class CheckoutState(str, enum.Enum):
    SELECTING_ADDRESS = "selecting_address"
    SELECTING_PAYMENT = "selecting_payment"
    PLACING = "placing"
    PLACED = "placed"


class PaymentMethod(str, enum.Enum):
    COD = "cod"
    CARD = "card"
    UPI = "upi"


class PaymentSimulator:
    """Stand-in for a payment gateway: wait, then succeed with a fixed odds."""

    def __init__(self, delay: Optional[float] = None, success_rate: Optional[float] = None,
                 rng: Optional[random.Random] = None, sleep=asyncio.sleep):
        self.delay = settings.PAYMENT_SIMULATION_DELAY if delay is None else delay
        self.success_rate = settings.PAYMENT_SUCCESS_RATE if success_rate is None else success_rate
        self.rng = rng or random.Random()
        self.sleep = sleep

    async def process(self, method: PaymentMethod) -> bool:
        if method == PaymentMethod.COD:
            return True
        await self.sleep(self.delay)
        return self.rng.random() < self.success_rate


@dataclass
class PlacementResult:
    order: Order
    redirect_to: str = "/orders"
    state: dict = field(default_factory=dict)


class CheckoutFlow:
    def __init__(self, db: Session, session, cart: CartStore,
                 payments: Optional[PaymentSimulator] = None, request: Optional[Request] = None):
        self.db = db
        self.session = session
        self.cart = cart
        self.payments = payments or PaymentSimulator()
        self.request = request
        self.state = CheckoutState.SELECTING_ADDRESS
        self.address: Optional[Address] = None
        self.method: Optional[PaymentMethod] = None

    @property
    def user_id(self) -> int:
        return self.session.user.id

    def _audit(self, action: str, status: str = "SUCCESS", **meta):
        write_log(self.db, user_id=self.session.user.id if self.session.user else None, action=action,
                  resource="checkout", status=status, ip=client_ip(self.request), meta=meta)

    def begin(self) -> "CheckoutFlow":
        # Nothing to check out: back to the cart view
        if self.session.user is None or self.cart.is_empty():
            raise NavigationRedirect("/cart")
        return self

    # ---- address step ----

    def list_addresses(self) -> List[Address]:
        return (
            self.db.query(Address)
            .filter(Address.user_id == self.user_id)
            .order_by(Address.is_default.desc(), Address.created_at.asc(), Address.id.asc())
            .all()
        )

    def default_address(self) -> Optional[Address]:
        addresses = self.list_addresses()
        for address in addresses:
            if address.is_default:
                return address
        return addresses[0] if addresses else None

    def _owned_address(self, address_id: int) -> Address:
        address = (
            self.db.query(Address)
            .filter(Address.id == address_id, Address.user_id == self.user_id)
            .first()
        )
        if address is None:
            raise NotFound("Address not found")
        return address

    def create_address(self, data: dict) -> Address:
        # First address of a user becomes the default one
        has_any = self.db.query(Address).filter(Address.user_id == self.user_id).first() is not None
        address = Address(user_id=self.user_id, is_default=not has_any,
                          **{k: data.get(k) for k in ADDRESS_FIELDS})
        self.db.add(address)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error saving address")
            raise RemoteCallError("Failed to save address")
        self.db.refresh(address)
        self._audit("ADDRESS_CREATE", address_id=address.id)
        return address

    def update_address(self, address_id: int, data: dict) -> Address:
        address = self._owned_address(address_id)
        for key in ADDRESS_FIELDS:
            if key in data:
                setattr(address, key, data[key])
        self.db.commit()
        self.db.refresh(address)
        self._audit("ADDRESS_UPDATE", address_id=address.id)
        return address

    def delete_address(self, address_id: int):
        address = self._owned_address(address_id)
        self.db.delete(address)
        self.db.commit()
        self._audit("ADDRESS_DELETE", address_id=address_id)

    def select_address(self, address_id: Optional[int]) -> dict:
        if not address_id:
            raise ValidationFailed("Please select a delivery address")
        self.address = self._owned_address(address_id)
        self.state = CheckoutState.SELECTING_PAYMENT
        return {"next": "/payment", "state": {"address_id": self.address.id}}

    # ---- payment step ----

    def select_payment(self, method: str):
        if self.state != CheckoutState.SELECTING_PAYMENT or self.address is None:
            raise ValidationFailed("Please select a delivery address")
        try:
            self.method = PaymentMethod(method)
        except ValueError:
            raise ValidationFailed(f"Unsupported payment method: {method}")

    async def place_order(self, notes: Optional[str] = None) -> PlacementResult:
        if self.state != CheckoutState.SELECTING_PAYMENT or self.method is None:
            raise ValidationFailed("Please choose a payment method")

        # Charge and write exactly what the cart held when payment started
        lines = self.cart.snapshot()
        if not lines:
            self.state = CheckoutState.SELECTING_PAYMENT
            raise NavigationRedirect("/cart")
        total = round(sum(line.line_total for line in lines), 2)

        self.state = CheckoutState.PLACING
        if not await self.payments.process(self.method):
            self.state = CheckoutState.SELECTING_PAYMENT
            self._audit("PAYMENT", "FAIL", method=self.method.value)
            raise PaymentFailed()

        order = self._insert_header(notes, total)
        try:
            self._insert_lines(order, lines)
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Order %s was created without line items", order.id, exc_info=True)
            self.state = CheckoutState.SELECTING_PAYMENT
            self._audit("ORDER_PLACE", "FAIL", order_id=order.id, reason="line items")
            raise PartialOrderFailure(order.id)

        self.cart.clear()
        self.state = CheckoutState.PLACED
        self._audit("ORDER_PLACE", order_id=order.id, total=total, method=self.method.value)
        return PlacementResult(order=order, state={"order_id": order.id})

    def _insert_header(self, notes: Optional[str], total: float) -> Order:
        now = datetime.now(timezone.utc)
        payment_status = PaymentStatus.PENDING if self.method == PaymentMethod.COD else PaymentStatus.COMPLETED
        order = Order(
            user_id=self.user_id,
            address_id=self.address.id,
            total_amount=total,
            status=OrderStatus.PENDING.value,
            payment_status=payment_status.value,
            payment_method=self.method.value,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        self.db.add(order)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error creating order")
            self.state = CheckoutState.SELECTING_PAYMENT
            raise RemoteCallError("Failed to place order. Please try again.")
        self.db.refresh(order)
        return order

    def _insert_lines(self, order: Order, lines: List[CartLine]):
        self.db.add_all([
            OrderItem(
                order_id=order.id,
                food_item_id=line.item_id,
                variant_id=line.variant_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
            for line in lines
        ])
        self.db.commit()
