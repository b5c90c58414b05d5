# backend/routes/orders.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from schemas.order import OrdersView
from services.auth_session import AuthSession
from services.order_tracking import OrderTrackingView, order_to_out
from utils.auth_deps import require_user

router = APIRouter(prefix="/orders", tags=["Orders"])


# Customer order tracking; order_id is the confirmation state handed over by checkout
@router.get("", response_model=OrdersView)
def my_orders(
    order_id: Optional[int] = Query(None, description="Order just placed, shown as a confirmation banner"),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_user),
):
    view = OrderTrackingView(db, session.user.id, confirmation_order_id=order_id)
    view.fetch()
    confirmation = view.take_confirmation()
    return OrdersView(
        active=[order_to_out(o) for o in view.active],
        past=[order_to_out(o) for o in view.past],
        confirmation=order_to_out(confirmation) if confirmation else None,
    )
