from datetime import datetime, timedelta, timezone

from models.order import Order, OrderItem
from services.order_tracking import OrderTrackingView, order_to_out
from utils.realtime import change_feed
from conftest import create_item, create_user


def _order(db, user, status="pending", minutes_ago=0, item=None):
    created = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    order = Order(user_id=user.id, total_amount=100.0, status=status, payment_status="pending",
                  payment_method="cod", created_at=created, updated_at=created)
    db.add(order)
    db.commit()
    db.refresh(order)
    if item is not None:
        db.add(OrderItem(order_id=order.id, food_item_id=item.id, variant_id=item.variants[0].id,
                         quantity=1, unit_price=100.0))
        db.commit()
    return order


def test_partitions_active_and_past_newest_first(db):
    user = create_user(db)
    old = _order(db, user, "delivered", minutes_ago=30)
    cancelled = _order(db, user, "cancelled", minutes_ago=20)
    preparing = _order(db, user, "preparing", minutes_ago=10)
    fresh = _order(db, user, "pending")

    view = OrderTrackingView(db, user.id)
    view.fetch()

    assert [o.id for o in view.active] == [fresh.id, preparing.id]
    assert [o.id for o in view.past] == [cancelled.id, old.id]


def test_only_own_orders(db):
    user = create_user(db)
    other = create_user(db, email="ola@example.com")
    _order(db, other)

    view = OrderTrackingView(db, user.id)
    assert view.fetch() == []


def test_confirmation_banner_shown_once(db):
    user = create_user(db)
    order = _order(db, user)

    view = OrderTrackingView(db, user.id, confirmation_order_id=order.id)
    view.fetch()

    assert view.take_confirmation().id == order.id
    assert view.take_confirmation() is None


def test_status_change_refetches(db, session_factory):
    user = create_user(db)
    order = _order(db, user)

    view_db = session_factory()
    view = OrderTrackingView(view_db, user.id)
    view.fetch()
    view.subscribe(change_feed)

    order.status = "delivered"
    db.commit()

    assert view.active == []
    assert [o.id for o in view.past] == [order.id]
    view.close()
    view_db.close()


def test_other_users_changes_are_filtered_out(db, session_factory):
    user = create_user(db)
    other = create_user(db, email="ola@example.com")

    view_db = session_factory()
    view = OrderTrackingView(view_db, user.id)
    view.fetch()
    calls = []
    view.subscribe(change_feed, calls.append)

    _order(db, other)

    assert calls == []
    view.close()
    view_db.close()


def test_removed_item_keeps_line(db):
    user = create_user(db)
    item = create_item(db)
    order = _order(db, user, item=item)
    db.query(OrderItem).filter(OrderItem.order_id == order.id).update({"food_item_id": None})
    db.commit()

    db.refresh(order)
    out = order_to_out(order)
    assert out.items[0].name == "Removed item"
    assert out.items[0].line_total == 100.0
