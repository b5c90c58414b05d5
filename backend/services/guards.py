# backend/services/guards.py
"""Navigation guards.

Each guard inspects the auth session and returns what the caller should do;
presentation (401 with the overlay, redirect, rendering) is left to the
route dependencies in ``utils.auth_deps``.
"""
from dataclasses import dataclass
from typing import Union

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Pending:
    """Initial session check still running; render nothing."""


@dataclass(frozen=True)
class RequiresAuth:
    """No signed-in user; the auth overlay has been opened."""


@dataclass(frozen=True)
class RequiresRole:
    role: str
    redirect_to: str = "/"


@dataclass(frozen=True)
class Authorized:
    session: object


GuardResult = Union[Pending, RequiresAuth, RequiresRole, Authorized]


def require_auth(session, modal) -> GuardResult:
    if session.loading:
        return Pending()
    if session.user is None:
        modal.open()
        return RequiresAuth()
    return Authorized(session)


def require_admin(session, modal) -> GuardResult:
    result = require_auth(session, modal)
    if not isinstance(result, Authorized):
        return result
    if session.role != ADMIN_ROLE:
        return RequiresRole(ADMIN_ROLE)
    return result
