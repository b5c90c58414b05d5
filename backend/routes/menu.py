# backend/routes/menu.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from schemas.menu import MenuPage
from services.auth_session import AuthSession
from services.cart_store import carts
from services.catalog import CatalogView, menu_card
from utils.auth_deps import get_auth_session

router = APIRouter(prefix="/menu", tags=["Menu"])


# Public menu; a signed-in caller also sees their cart quantities
@router.get("", response_model=MenuPage)
def browse_menu(
    q: Optional[str] = Query(None, description="Search name, category or description"),
    category: Optional[str] = Query(None, description="Exact category, 'All' for every item"),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_auth_session),
):
    view = CatalogView(db, search=q or "", category=category)
    view.fetch()

    cart = carts.peek(session.user.id) if session.user else None
    items = [] if view.coming_soon else [menu_card(item, cart) for item in view.filtered]
    return MenuPage(
        categories=view.categories,
        selected_category=view.category,
        search=view.search,
        coming_soon=view.coming_soon,
        items=items,
    )
