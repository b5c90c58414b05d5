# backend/utils/errors.py
"""Domain errors raised by the storefront services.

Routes let these propagate; the handlers registered in ``main.py`` turn them
into JSON responses (or redirects) so every failure reaches the user once.
"""
import enum
from typing import Optional


class StorefrontError(Exception):
    status_code = 400
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# Missing or malformed input, detected before touching the store
class ValidationFailed(StorefrontError):
    status_code = 400
    kind = "validation"


class NotFound(StorefrontError):
    status_code = 404
    kind = "not_found"


class AuthErrorKind(str, enum.Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    ALREADY_REGISTERED = "already_registered"
    GENERIC = "generic"


AUTH_MESSAGES = {
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid email or password. Please check your credentials.",
    AuthErrorKind.EMAIL_NOT_CONFIRMED: "Please check your email and click the confirmation link first.",
    AuthErrorKind.ALREADY_REGISTERED: "Account already exists. Please sign in instead.",
}

AUTH_STATUS_CODES = {
    AuthErrorKind.INVALID_CREDENTIALS: 401,
    AuthErrorKind.EMAIL_NOT_CONFIRMED: 403,
    AuthErrorKind.ALREADY_REGISTERED: 409,
    AuthErrorKind.GENERIC: 400,
}


class AuthError(StorefrontError):
    def __init__(self, kind: AuthErrorKind, message: Optional[str] = None):
        # Generic failures pass the underlying message through
        super().__init__(message or AUTH_MESSAGES.get(kind, "Authentication failed"))
        self.auth_kind = kind
        self.kind = kind.value
        self.status_code = AUTH_STATUS_CODES[kind]


class PaymentFailed(StorefrontError):
    status_code = 402
    kind = "payment_failed"

    def __init__(self, message: str = "Payment failed. Please try again."):
        super().__init__(message)


# The data store rejected or failed a write
class RemoteCallError(StorefrontError):
    status_code = 500
    kind = "remote"


# Order header was written but its lines were not
class PartialOrderFailure(RemoteCallError):
    kind = "partial_failure"

    def __init__(self, order_id: int):
        super().__init__("Failed to place order. Please try again.")
        self.order_id = order_id


class AuthModalRequired(Exception):
    """A guarded route was hit without a session; carries the overlay state."""

    def __init__(self, modal_state: dict):
        super().__init__("Authentication required")
        self.modal_state = modal_state


class NavigationRedirect(Exception):
    """Send the client to another route of the storefront."""

    def __init__(self, location: str, state: Optional[dict] = None):
        super().__init__(location)
        self.location = location
        self.state = state or {}
