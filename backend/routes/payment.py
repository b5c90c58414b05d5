# backend/routes/payment.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from schemas.order import PaymentRequest, PlacementResponse
from services.auth_session import AuthSession
from services.cart_store import CartStore
from services.checkout import CheckoutFlow, PaymentSimulator
from utils.auth_deps import get_cart, require_user

router = APIRouter(prefix="/payment", tags=["Checkout"])


def get_payment_simulator() -> PaymentSimulator:
    return PaymentSimulator()


# Payment step: charge (simulated) and place the order
@router.post("", response_model=PlacementResponse)
async def place_order(
    payload: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_user),
    cart: CartStore = Depends(get_cart),
    payments: PaymentSimulator = Depends(get_payment_simulator),
):
    flow = CheckoutFlow(db, session, cart, payments=payments, request=request).begin()
    flow.select_address(payload.address_id)
    flow.select_payment(payload.method)
    result = await flow.place_order(payload.notes)

    order = result.order
    return PlacementResponse(
        order_id=order.id,
        total_amount=order.total_amount,
        status=order.status,
        payment_status=order.payment_status,
        redirect_to=result.redirect_to,
        state=result.state,
        message="Order placed successfully!",
    )
