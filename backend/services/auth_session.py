# backend/services/auth_session.py
"""Auth session facade.

Wraps sign-in, sign-up, password recovery and federated sign-in behind one
object exposing ``user``, ``role``, ``loading`` and ``pending_redirect``.
The role lives in ``user_roles`` and is looked up after the credentials are
accepted; callers choose a destination only through ``redirect_target()``,
which stays empty until both user and role are known.
"""
import logging
import threading
import time
import uuid
from typing import Dict, Optional

import httpx
from fastapi import Request
from jose import JWTError
from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from models.users import User, UserRole
from services.cart_store import carts
from services.guards import ADMIN_ROLE
from utils import tokenJWT
from utils.audit import write_log, client_ip
from utils.errors import AuthError, AuthErrorKind, ValidationFailed
from utils.hashing import get_password_hash, verify_password
from utils.mailer import send_mail
from utils.oauth_client import google_client

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
INVALID_RESET_LINK = "Invalid or expired password reset link. Please request a new one."
FEDERATED_FAILURE = "Google sign-in failed. Please try again."

# Token ids ended by sign-out, with the expiry (epoch seconds) of their token
_revoked_tokens: Dict[str, float] = {}
_revoked_lock = threading.Lock()


def _drop_expired_revocations(now: float):
    # An expired token is refused by decode_token anyway
    for token_id, expires_at in list(_revoked_tokens.items()):
        if expires_at <= now:
            del _revoked_tokens[token_id]


def revoke_token(token_id: str, expires_at: Optional[float] = None):
    if expires_at is None:
        expires_at = time.time() + settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    with _revoked_lock:
        _drop_expired_revocations(time.time())
        _revoked_tokens[token_id] = expires_at


def is_revoked(token_id: Optional[str]) -> bool:
    with _revoked_lock:
        _drop_expired_revocations(time.time())
        return token_id in _revoked_tokens


def _normalize(email: str) -> str:
    return (email or "").strip().lower()


class AuthSession:
    def __init__(self, db: Session, request: Optional[Request] = None):
        self.db = db
        self.request = request
        self.user: Optional[User] = None
        self.role: Optional[str] = None
        self.loading = True
        self.pending_redirect = False
        self.access_token: Optional[str] = None
        self.admin_login = False
        self._token_id: Optional[str] = None
        self._token_expires_at: Optional[float] = None

    # ---- session state ----

    def restore(self, token: Optional[str]) -> "AuthSession":
        """Initial session check; ``loading`` drops once it has resolved."""
        try:
            if token:
                payload = tokenJWT.decode_token(token, tokenJWT.ACCESS)
                if not is_revoked(payload.get("jti")):
                    user = self._find_user(payload.get("sub"))
                    if user is not None:
                        self.user = user
                        self.access_token = token
                        self.admin_login = bool(payload.get("adm"))
                        self._token_id = payload.get("jti")
                        self._token_expires_at = payload.get("exp")
                        self.resolve_role()
        except JWTError:
            logger.debug("Rejected bearer token")
        finally:
            self.loading = False
        return self

    def resolve_role(self) -> Optional[str]:
        if self.user is None:
            self.role = None
            return None
        record = self.db.query(UserRole).filter(UserRole.user_id == self.user.id).first()
        self.role = record.role if record else None
        return self.role

    def redirect_target(self) -> Optional[str]:
        if not (self.pending_redirect and self.user is not None and self.role):
            return None
        self.pending_redirect = False
        return "/admin" if self.role == ADMIN_ROLE else "/"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def _find_user(self, email: Optional[str]) -> Optional[User]:
        if not email:
            return None
        return self.db.query(User).filter(func.lower(User.email) == _normalize(email)).first()

    def _audit(self, action: str, status: str = "SUCCESS", user_id=None, **meta):
        write_log(self.db, user_id=user_id, action=action, resource="auth", status=status,
                  ip=client_ip(self.request), meta=meta)

    def _start_session(self, user: User, action: str) -> str:
        self.user = user
        self.loading = False
        self.pending_redirect = True
        self.resolve_role()
        self.admin_login = self.role == ADMIN_ROLE
        self._token_id = uuid.uuid4().hex
        self._token_expires_at = time.time() + tokenJWT.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        self.access_token = tokenJWT.create_access_token(
            {"sub": user.email, "adm": self.admin_login, "jti": self._token_id}
        )
        self._audit(action, user_id=user.id, email=user.email)
        return self.access_token

    # ---- operations ----

    def sign_in(self, email: str, password: str) -> str:
        user = self._find_user(email)
        if user is None or not verify_password(password, user.password_hash):
            self._audit("LOGIN", "FAIL", user_id=user.id if user else None, email=email)
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)
        if not user.email_confirmed:
            self._audit("LOGIN", "FAIL", user_id=user.id, email=email, reason="unconfirmed")
            raise AuthError(AuthErrorKind.EMAIL_NOT_CONFIRMED)
        return self._start_session(user, "LOGIN")

    def sign_up(self, email: str, password: str, full_name: str) -> User:
        if not (full_name or "").strip():
            raise ValidationFailed("Please enter your full name")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationFailed("Password must be at least 6 characters long")

        normalized = _normalize(email)
        if self._find_user(normalized) is not None:
            self._audit("REGISTER", "FAIL", email=normalized, reason="Email exists")
            raise AuthError(AuthErrorKind.ALREADY_REGISTERED)

        needs_confirmation = settings.REQUIRE_EMAIL_CONFIRMATION
        user = User(
            email=normalized,
            password_hash=get_password_hash(password),
            full_name=full_name.strip(),
            email_confirmed=not needs_confirmation,
            auth_provider="email",
        )
        user.role_record = UserRole(role="customer")
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        if needs_confirmation:
            link = f"{settings.BACKEND_URL}/auth/confirm?token={tokenJWT.create_confirmation_token(user.email)}"
            send_mail(user.email, "Confirm your account", f"Confirm your e-mail address: {link}")

        self._audit("REGISTER", user_id=user.id, email=user.email)
        return user

    def confirm_email(self, token: str) -> User:
        try:
            payload = tokenJWT.decode_token(token, tokenJWT.CONFIRM)
        except JWTError:
            raise AuthError(AuthErrorKind.GENERIC, "Invalid or expired confirmation link.")
        user = self._find_user(payload.get("sub"))
        if user is None:
            raise AuthError(AuthErrorKind.GENERIC, "Invalid or expired confirmation link.")
        user.email_confirmed = True
        self.db.commit()
        self._audit("CONFIRM_EMAIL", user_id=user.id, email=user.email)
        return user

    def request_password_reset(self, email: str):
        if not (email or "").strip():
            raise ValidationFailed("Please enter your email address")
        user = self._find_user(email)
        # Same answer whether or not the account exists
        if user is not None:
            access, refresh = tokenJWT.create_recovery_tokens(user.email)
            link = (
                f"{settings.FRONTEND_URL}/reset-password"
                f"?access_token={access}&refresh_token={refresh}&type=recovery"
            )
            send_mail(user.email, "Reset your password", f"Reset your password: {link}")
        self._audit("PASSWORD_RESET_REQUEST", user_id=user.id if user else None, email=_normalize(email))

    def exchange_recovery_session(self, access_token: str, refresh_token: str, token_type: str) -> User:
        """Turn the token pair from a reset link into a session."""
        if token_type != "recovery" or not access_token or not refresh_token:
            raise AuthError(AuthErrorKind.GENERIC, INVALID_RESET_LINK)
        try:
            access = tokenJWT.decode_token(access_token, tokenJWT.RECOVERY)
            refresh = tokenJWT.decode_token(refresh_token, tokenJWT.REFRESH)
        except JWTError:
            raise AuthError(AuthErrorKind.GENERIC, INVALID_RESET_LINK)
        if access.get("sub") != refresh.get("sub") or access.get("sid") != refresh.get("sid"):
            raise AuthError(AuthErrorKind.GENERIC, INVALID_RESET_LINK)

        user = self._find_user(access.get("sub"))
        if user is None:
            raise AuthError(AuthErrorKind.GENERIC, INVALID_RESET_LINK)
        self.user = user
        self.loading = False
        self.resolve_role()
        return user

    def update_password(self, password: str, confirm_password: str):
        if self.user is None:
            raise AuthError(AuthErrorKind.GENERIC, "Auth session missing!")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationFailed("Password must be at least 6 characters long")
        if password != confirm_password:
            raise ValidationFailed("Passwords do not match")
        self.user.password_hash = get_password_hash(password)
        self.db.commit()
        self._audit("PASSWORD_RESET", user_id=self.user.id, email=self.user.email)

    def sign_in_with_federated_identity(self, provider: str = "google") -> str:
        """Returns the provider URL the client has to be sent to."""
        if provider != "google":
            raise AuthError(AuthErrorKind.GENERIC, f"Unsupported identity provider: {provider}")
        if not google_client.client_id:
            raise AuthError(AuthErrorKind.GENERIC, "Google sign-in is not configured")
        return google_client.authorization_url(tokenJWT.create_state_token())

    async def complete_federated_sign_in(self, code: str, state: str) -> str:
        try:
            tokenJWT.decode_token(state, tokenJWT.OAUTH_STATE)
        except JWTError:
            raise AuthError(AuthErrorKind.GENERIC, FEDERATED_FAILURE)

        try:
            provider_token = await google_client.exchange_code(code)
            info = await google_client.fetch_userinfo(provider_token)
        except httpx.HTTPError:
            logger.exception("Federated sign-in failed")
            raise AuthError(AuthErrorKind.GENERIC, FEDERATED_FAILURE)

        email = _normalize(info.get("email"))
        if not email:
            raise AuthError(AuthErrorKind.GENERIC, FEDERATED_FAILURE)

        user = self._find_user(email)
        if user is None:
            user = User(email=email, full_name=info.get("name"), email_confirmed=True, auth_provider="google")
            user.role_record = UserRole(role="customer")
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        return self._start_session(user, "LOGIN_GOOGLE")

    def sign_out(self):
        if self.user is not None:
            carts.discard(self.user.id)
            self._audit("LOGOUT", user_id=self.user.id, admin=self.admin_login)
        if self._token_id:
            revoke_token(self._token_id, self._token_expires_at)
        self.user = None
        self.role = None
        self.access_token = None
        self.pending_redirect = False
        self.admin_login = False
        self._token_id = None
        self._token_expires_at = None
