# backend/routes/dashboard.py
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from schemas.user import UserResponse
from services.auth_session import AuthSession
from services.cart_store import carts
from services.order_tracking import OrderTrackingView
from utils.auth_deps import require_user
from utils.navigation import QUICK_ACTIONS

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


class QuickAction(BaseModel):
    title: str
    description: str
    path: str


class DashboardOut(BaseModel):
    greeting: str
    user: UserResponse
    quick_actions: List[QuickAction]
    active_orders: int
    cart_items: int


@router.get("", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db), session: AuthSession = Depends(require_user)):
    user = session.user
    view = OrderTrackingView(db, user.id)
    view.fetch()
    cart = carts.peek(user.id)
    return DashboardOut(
        greeting=f"Welcome back, {user.full_name or 'Food Lover'}!",
        user=UserResponse.model_validate(user),
        quick_actions=QUICK_ACTIONS,
        active_orders=len(view.active),
        cart_items=cart.total_items if cart else 0,
    )
