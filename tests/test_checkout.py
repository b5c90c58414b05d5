import asyncio
import random
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import SQLAlchemyError

from models.order import Order, OrderItem
from services.cart_store import CartStore
from services.checkout import CheckoutFlow, CheckoutState, PaymentMethod, PaymentSimulator
from utils.errors import NavigationRedirect, NotFound, PartialOrderFailure, PaymentFailed, ValidationFailed
from conftest import create_item, create_user

ADDRESS = {
    "full_name": "Jan Kowalski",
    "phone": "600100200",
    "address_line1": "ul. Długa 1",
    "city": "Gdańsk",
    "state": "Pomorskie",
    "pincode": "80-001",
}


@pytest.fixture
def user(db):
    return create_user(db)


@pytest.fixture
def cart(db):
    # 200 x 1 + 125 x 2 = 450
    pizza = create_item(db, "Pizza", variants=(("Large", 200.0),))
    burger = create_item(db, "Burger", "Burgers", variants=(("Double", 125.0),))
    cart = CartStore()
    cart.add_item(pizza, pizza.variants[0])
    cart.add_item(burger, burger.variants[0])
    cart.add_item(burger, burger.variants[0])
    return cart


def _flow(db, user, cart, success_rate=1.0):
    payments = PaymentSimulator(delay=0, success_rate=success_rate, rng=random.Random(1))
    return CheckoutFlow(db, SimpleNamespace(user=user), cart, payments=payments)


def _ready(db, user, cart, method="cod", success_rate=1.0):
    flow = _flow(db, user, cart, success_rate).begin()
    address = flow.create_address(ADDRESS)
    flow.select_address(address.id)
    flow.select_payment(method)
    return flow


def test_empty_cart_redirects_to_cart(db, user):
    with pytest.raises(NavigationRedirect) as exc:
        _flow(db, user, CartStore()).begin()
    assert exc.value.location == "/cart"


def test_no_user_redirects_to_cart(db, cart):
    with pytest.raises(NavigationRedirect):
        _flow(db, None, cart).begin()


def test_first_address_becomes_default(db, user, cart):
    flow = _flow(db, user, cart)
    first = flow.create_address(ADDRESS)
    second = flow.create_address(dict(ADDRESS, city="Sopot"))

    assert first.is_default and not second.is_default
    assert [a.id for a in flow.list_addresses()] == [first.id, second.id]
    assert flow.default_address().id == first.id


def test_addresses_are_owner_scoped(db, user, cart):
    other = create_user(db, email="ola@example.com")
    foreign = _flow(db, other, cart).create_address(ADDRESS)

    flow = _flow(db, user, cart)
    with pytest.raises(NotFound):
        flow.select_address(foreign.id)
    with pytest.raises(NotFound):
        flow.delete_address(foreign.id)


def test_selection_required(db, user, cart):
    flow = _flow(db, user, cart).begin()
    with pytest.raises(ValidationFailed):
        flow.select_address(None)


def test_select_address_hands_over_to_payment(db, user, cart):
    flow = _flow(db, user, cart).begin()
    address = flow.create_address(ADDRESS)

    assert flow.select_address(address.id) == {"next": "/payment", "state": {"address_id": address.id}}
    assert flow.state == CheckoutState.SELECTING_PAYMENT


def test_unknown_payment_method_rejected(db, user, cart):
    flow = _flow(db, user, cart).begin()
    flow.select_address(flow.create_address(ADDRESS).id)
    with pytest.raises(ValidationFailed):
        flow.select_payment("bitcoin")


def test_cod_order_leaves_payment_pending(db, user, cart):
    flow = _ready(db, user, cart, "cod")
    result = asyncio.run(flow.place_order())

    order = result.order
    assert order.total_amount == 450.0
    assert order.status == "pending"
    assert order.payment_status == "pending"
    assert result.redirect_to == "/orders"
    assert result.state == {"order_id": order.id}
    assert flow.state == CheckoutState.PLACED
    assert cart.is_empty()

    lines = db.query(OrderItem).filter(OrderItem.order_id == order.id).all()
    assert sorted((l.quantity, l.unit_price) for l in lines) == [(1, 200.0), (2, 125.0)]


@pytest.mark.parametrize("method", ["card", "upi"])
def test_prepaid_order_is_completed(db, user, cart, method):
    result = asyncio.run(_ready(db, user, cart, method).place_order())
    assert result.order.payment_status == "completed"
    assert result.order.payment_method == method


def test_payment_failure_returns_to_payment_step(db, user, cart):
    flow = _ready(db, user, cart, "card", success_rate=0.0)

    with pytest.raises(PaymentFailed) as exc:
        asyncio.run(flow.place_order())

    assert exc.value.message == "Payment failed. Please try again."
    assert flow.state == CheckoutState.SELECTING_PAYMENT
    assert db.query(Order).count() == 0
    assert cart.total_items == 3


def test_simulator_waits_for_prepaid_methods_only():
    waits = []

    async def fake_sleep(seconds):
        waits.append(seconds)

    sim = PaymentSimulator(delay=2.0, success_rate=1.0, sleep=fake_sleep)
    assert asyncio.run(sim.process(PaymentMethod.COD))
    assert asyncio.run(sim.process(PaymentMethod.CARD))
    assert waits == [2.0]


def test_line_failure_leaves_header_behind(db, user, cart, monkeypatch):
    flow = _ready(db, user, cart, "cod")

    def broken(self, order, lines):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(CheckoutFlow, "_insert_lines", broken)

    with pytest.raises(PartialOrderFailure) as exc:
        asyncio.run(flow.place_order())

    orphan = db.query(Order).filter(Order.id == exc.value.order_id).one()
    assert orphan.items == []
    assert exc.value.message == "Failed to place order. Please try again."
    assert not cart.is_empty()


def _flow_with_sleep(db, user, cart, sleep):
    payments = PaymentSimulator(delay=2.0, success_rate=1.0, rng=random.Random(1), sleep=sleep)
    flow = CheckoutFlow(db, SimpleNamespace(user=user), cart, payments=payments).begin()
    flow.select_address(flow.create_address(ADDRESS).id)
    flow.select_payment("card")
    return flow


def test_cart_emptied_during_payment_still_places_paid_contents(db, user, cart):
    async def clear_while_waiting(seconds):
        cart.clear()

    result = asyncio.run(_flow_with_sleep(db, user, cart, clear_while_waiting).place_order())

    order = result.order
    assert order.total_amount == 450.0
    lines = db.query(OrderItem).filter(OrderItem.order_id == order.id).all()
    assert sorted((l.quantity, l.unit_price) for l in lines) == [(1, 200.0), (2, 125.0)]


def test_cart_edited_during_payment_does_not_change_order(db, user, cart):
    extra = create_item(db, "Dessert", "Desserts", variants=(("Cup", 80.0),))
    pizza_line = cart.lines[0]

    async def edit_while_waiting(seconds):
        cart.add_item(extra, extra.variants[0])
        cart.update_quantity(pizza_line.item_id, pizza_line.variant_id, 5)

    result = asyncio.run(_flow_with_sleep(db, user, cart, edit_while_waiting).place_order())

    lines = db.query(OrderItem).filter(OrderItem.order_id == result.order.id).all()
    assert result.order.total_amount == 450.0
    assert sum(l.quantity * l.unit_price for l in lines) == result.order.total_amount
    assert extra.id not in {l.food_item_id for l in lines}


def test_cart_emptied_before_placing_goes_back_to_cart(db, user, cart):
    flow = _ready(db, user, cart, "cod")
    cart.clear()

    with pytest.raises(NavigationRedirect) as exc:
        asyncio.run(flow.place_order())

    assert exc.value.location == "/cart"
    assert db.query(Order).count() == 0
