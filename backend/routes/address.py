# backend/routes/address.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from schemas.address import AddressCreate, AddressUpdate, AddressOut, AddressList, AddressSelect, NavigationOut
from schemas.user import MessageResponse
from services.auth_session import AuthSession
from services.cart_store import CartStore
from services.checkout import CheckoutFlow
from utils.auth_deps import get_cart, require_user

router = APIRouter(prefix="/address", tags=["Checkout"])


def _flow(request: Request, db: Session, session: AuthSession, cart: CartStore) -> CheckoutFlow:
    return CheckoutFlow(db, session, cart, request=request)


# Address step of checkout: saved addresses, default first and preselected
@router.get("", response_model=AddressList)
def list_addresses(
    request: Request,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_user),
    cart: CartStore = Depends(get_cart),
):
    flow = _flow(request, db, session, cart).begin()
    addresses = flow.list_addresses()
    selected = flow.default_address()
    return AddressList(
        addresses=[AddressOut.model_validate(a) for a in addresses],
        selected_address_id=selected.id if selected else None,
        total_amount=round(cart.total_amount, 2),
    )


@router.post("", response_model=AddressOut, status_code=status.HTTP_201_CREATED)
def create_address(
    payload: AddressCreate,
    request: Request,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_user),
    cart: CartStore = Depends(get_cart),
):
    return _flow(request, db, session, cart).create_address(payload.model_dump())


@router.put("/{address_id}", response_model=AddressOut)
def update_address(
    address_id: int,
    payload: AddressUpdate,
    request: Request,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_user),
    cart: CartStore = Depends(get_cart),
):
    return _flow(request, db, session, cart).update_address(address_id, payload.model_dump(exclude_unset=True))


@router.delete("/{address_id}", response_model=MessageResponse)
def delete_address(
    address_id: int,
    request: Request,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_user),
    cart: CartStore = Depends(get_cart),
):
    _flow(request, db, session, cart).delete_address(address_id)
    return {"message": "Address deleted"}


# Explicit selection; the chosen id travels to the payment step as navigation state
@router.post("/select", response_model=NavigationOut)
def select_address(
    payload: AddressSelect,
    request: Request,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_user),
    cart: CartStore = Depends(get_cart),
):
    flow = _flow(request, db, session, cart).begin()
    return flow.select_address(payload.address_id)
