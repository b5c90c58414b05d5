# backend/utils/auth_deps.py
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from services import guards
from services.auth_modal import AuthModalController
from services.auth_session import AuthSession
from services.cart_store import CartStore, carts
from utils.errors import AuthModalRequired, NavigationRedirect
from utils.tokenJWT import bearer_scheme


# Resolve the caller's session from the bearer token; never fails on its own
def get_auth_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthSession:
    session = AuthSession(db, request)
    return session.restore(credentials.credentials if credentials else None)


def enforce(result: guards.GuardResult, modal: AuthModalController) -> AuthSession:
    if isinstance(result, guards.Authorized):
        return result.session
    if isinstance(result, guards.Pending):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Session is still loading")
    if isinstance(result, guards.RequiresRole):
        raise NavigationRedirect(result.redirect_to)
    raise AuthModalRequired(modal.snapshot())


# Route dependency: signed-in user required
def require_user(session: AuthSession = Depends(get_auth_session)) -> AuthSession:
    modal = AuthModalController()
    return enforce(guards.require_auth(session, modal), modal)


# Route dependency: admin role required
def require_admin(session: AuthSession = Depends(get_auth_session)) -> AuthSession:
    modal = AuthModalController()
    return enforce(guards.require_admin(session, modal), modal)


def get_cart(session: AuthSession = Depends(require_user)) -> CartStore:
    return carts.get(session.user.id)
