# backend/routes/cart.py
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database import get_db
from models.menu import FoodItem, FoodItemVariant
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartLineOut
from services.auth_session import AuthSession
from services.cart_store import CartStore
from utils.audit import write_log, client_ip
from utils.auth_deps import get_cart, require_user

router = APIRouter(prefix="/cart", tags=["Cart"])


def _cart_to_out(cart: CartStore, message: str = None) -> CartOut:
    items = [
        CartLineOut(
            item_id=line.item_id,
            variant_id=line.variant_id,
            name=line.name,
            variant_label=line.variant_label,
            unit_price=line.unit_price,
            quantity=line.quantity,
            line_total=round(line.line_total, 2),
            image_url=line.image_url,
        )
        for line in cart.lines
    ]
    return CartOut(items=items, total_items=cart.total_items, total_amount=round(cart.total_amount, 2), message=message)


@router.get("", response_model=CartOut)
def get_cart_view(cart: CartStore = Depends(get_cart)):
    return _cart_to_out(cart)


@router.post("/items", response_model=CartOut)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_user),
    cart: CartStore = Depends(get_cart),
):
    item = db.query(FoodItem).filter(FoodItem.id == payload.item_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Food item not found")
    if not item.orderable:
        raise HTTPException(status_code=400, detail="No variants available")

    variant = db.query(FoodItemVariant).filter(
        FoodItemVariant.id == payload.variant_id, FoodItemVariant.food_item_id == item.id
    ).first()
    if not variant:
        raise HTTPException(status_code=404, detail="Variant not found")

    # Stock is the caller's check, the cart itself never refuses
    if not item.in_stock:
        raise HTTPException(status_code=400, detail="This item is currently out of stock")

    line = cart.add_item(item, variant)
    out = _cart_to_out(cart, f"{item.name} ({variant.label}) added to cart!")
    write_log(
        db, user_id=session.user.id, action="CART_ADD", resource="cart", status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": item.id, "variant_id": variant.id, "qty": line.quantity, "total": out.total_amount},
    )
    return out


# Set a line's quantity; zero or less drops the line
@router.put("/items", response_model=CartOut)
def update_cart_item(
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_user),
    cart: CartStore = Depends(get_cart),
):
    cart.update_quantity(payload.item_id, payload.variant_id, payload.quantity)
    out = _cart_to_out(cart)
    write_log(
        db, user_id=session.user.id, action="CART_UPDATE", resource="cart", status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": payload.item_id, "variant_id": payload.variant_id, "qty": payload.quantity, "total": out.total_amount},
    )
    return out


@router.delete("/items/{item_id}/{variant_id}", response_model=CartOut)
def delete_cart_item(
    item_id: int,
    variant_id: int,
    request: Request,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_user),
    cart: CartStore = Depends(get_cart),
):
    cart.remove_item(item_id, variant_id)
    out = _cart_to_out(cart)
    write_log(
        db, user_id=session.user.id, action="CART_DELETE", resource="cart", status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": item_id, "variant_id": variant_id, "cart_items": len(out.items), "total": out.total_amount},
    )
    return out


@router.delete("", response_model=CartOut)
def clear_cart(cart: CartStore = Depends(get_cart)):
    cart.clear()
    return _cart_to_out(cart)
