# backend/routes/admin.py
import logging
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.log import Log
from schemas.admin import AdminOverview, DashboardStats, LogPage, StatusChangeResponse, StockToggleResponse
from schemas.menu import FoodItemOut, FoodItemUpdate, VariantCreate, VariantOut, VariantUpdate
from schemas.order import OrderResponse, OrderStatusPatch
from schemas.user import MessageResponse
from services.admin_console import AdminConsole, format_status
from services.auth_session import AuthSession
from utils.auth_deps import require_admin

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]


def get_console(request: Request, db: Session = Depends(get_db),
                session: AuthSession = Depends(require_admin)) -> AdminConsole:
    return AdminConsole(db, user_id=session.user.id, request=request)


def _save_upload(file: UploadFile) -> str:
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type")

    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    ext = (file.filename or "").rsplit(".", 1)[-1] or "img"
    unique_filename = f"{uuid.uuid4()}.{ext}"
    try:
        with open(upload_dir / unique_filename, "wb") as buffer:
            shutil.copyfileobj(file.file, buffer)
    except OSError as e:
        logger.exception("Upload save failed")
        raise HTTPException(status_code=500, detail=f"File save error: {e}")
    finally:
        file.file.close()
    return f"/uploads/{unique_filename}"


# Manual refresh: counters, every order and the whole menu
@router.get("", response_model=AdminOverview)
def overview(console: AdminConsole = Depends(get_console)):
    console.refresh()
    return AdminOverview(
        stats=console.stats,
        orders=console.orders,
        items=[FoodItemOut.model_validate(i) for i in console.items],
    )


@router.get("/stats", response_model=DashboardStats)
def stats(console: AdminConsole = Depends(get_console)):
    return console.fetch_stats()


# ---- orders ----

@router.get("/orders", response_model=List[OrderResponse])
def all_orders(
    status_filter: Optional[str] = Query(None, alias="status", description="Only orders in this status"),
    console: AdminConsole = Depends(get_console),
):
    orders = console.fetch_orders()
    if status_filter:
        orders = [o for o in orders if o.status == status_filter]
    return orders


# Any status may follow any other
@router.patch("/orders/{order_id}/status", response_model=StatusChangeResponse)
def change_order_status(order_id: int, payload: OrderStatusPatch, console: AdminConsole = Depends(get_console)):
    console.fetch_orders()
    order = console.update_order_status(order_id, payload.status)
    message = f"Order status updated to {format_status(order.status)}"
    return StatusChangeResponse(order=order, stats=console.stats, message=message)


# ---- menu items ----

@router.get("/items", response_model=List[FoodItemOut])
def all_items(console: AdminConsole = Depends(get_console)):
    return console.fetch_items()


@router.post("/items", response_model=FoodItemOut, status_code=status.HTTP_201_CREATED)
def create_item(
    file: Optional[UploadFile] = File(None),
    name: str = Form(""),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None),
    console: AdminConsole = Depends(get_console),
):
    if file is not None and file.filename:
        image_url = _save_upload(file)
    return console.create_item(name, description=description, category=category, image_url=image_url)


@router.put("/items/{item_id}", response_model=FoodItemOut)
def update_item(item_id: int, payload: FoodItemUpdate, console: AdminConsole = Depends(get_console)):
    return console.update_item(item_id, **payload.model_dump(exclude_unset=True))


@router.delete("/items/{item_id}", response_model=MessageResponse)
def delete_item(item_id: int, console: AdminConsole = Depends(get_console)):
    console.delete_item(item_id)
    return {"message": "Item deleted"}


@router.patch("/items/{item_id}/stock", response_model=StockToggleResponse)
def toggle_stock(item_id: int, console: AdminConsole = Depends(get_console)):
    item, message = console.toggle_stock(item_id)
    return StockToggleResponse(item=FoodItemOut.model_validate(item), message=message)


# ---- variants ----

@router.get("/items/{item_id}/variants", response_model=List[VariantOut])
def item_variants(item_id: int, console: AdminConsole = Depends(get_console)):
    console.fetch_variants()
    return console.variants_for(item_id)


@router.post("/items/{item_id}/variants", response_model=VariantOut, status_code=status.HTTP_201_CREATED)
def create_variant(item_id: int, payload: VariantCreate, console: AdminConsole = Depends(get_console)):
    return console.create_variant(item_id, payload.label, payload.price)


@router.put("/variants/{variant_id}", response_model=VariantOut)
def update_variant(variant_id: int, payload: VariantUpdate, console: AdminConsole = Depends(get_console)):
    return console.update_variant(variant_id, label=payload.label, price=payload.price)


@router.delete("/variants/{variant_id}", response_model=MessageResponse)
def delete_variant(variant_id: int, console: AdminConsole = Depends(get_console)):
    console.delete_variant(variant_id)
    return {"message": "Variant deleted"}


# ---- audit log ----

@router.get("/logs", response_model=LogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[int] = Query(None, description="Filter by user id"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    status_filter: Optional[str] = Query(None, alias="status", description="SUCCESS or FAIL"),
    date_from: Optional[str] = Query(None, description="From date (YYYY-MM-DD)"),
    date_to: Optional[str] = Query(None, description="To date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_admin),
):
    query = db.query(Log)

    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if status_filter:
        query = query.filter(Log.status == status_filter)

    try:
        if date_from:
            query = query.filter(Log.ts >= datetime.fromisoformat(date_from))
        if date_to:
            # A bare date covers the whole day
            if len(date_to) == 10:
                date_to += " 23:59:59"
            query = query.filter(Log.ts <= datetime.fromisoformat(date_to))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format, expected YYYY-MM-DD")

    query = query.order_by(Log.ts.desc(), Log.id.desc())
    total = query.count()
    logs = query.offset((page - 1) * page_size).limit(page_size).all()

    return {"items": logs, "total": total, "page": page, "page_size": page_size}


# Ends the admin session and clears the persisted admin-login flag
@router.post("/logout", response_model=MessageResponse)
def admin_logout(session: AuthSession = Depends(require_admin)):
    session.sign_out()
    return {"message": "Logged out successfully"}
