# backend/services/auth_modal.py
from typing import Optional

MODES = ("signin", "signup", "forgot")


class AuthModalController:
    """Open/closed state of the sign-in overlay.

    Protected actions open the overlay instead of navigating away, so the
    user stays where they were. Closing never cancels a call in flight.
    """

    def __init__(self):
        self.is_open = False
        self.mode = "signin"
        self.is_password_reset_open = False
        self._reset_fields()

    def _reset_fields(self):
        self.email = ""
        self.password = ""
        self.full_name = ""

    def open(self, mode: str = "signin"):
        if mode not in MODES:
            raise ValueError(f"Unknown auth mode: {mode}")
        self.mode = mode
        self.is_open = True

    def close(self):
        self.is_open = False
        self.mode = "signin"
        self._reset_fields()

    def switch_mode(self, mode: str):
        if mode not in MODES:
            raise ValueError(f"Unknown auth mode: {mode}")
        self.mode = mode

    def open_password_reset(self):
        self.is_password_reset_open = True

    def close_password_reset(self):
        self.is_password_reset_open = False

    def snapshot(self, email: Optional[str] = None) -> dict:
        return {
            "open": self.is_open,
            "mode": self.mode,
            "password_reset_open": self.is_password_reset_open,
            "email": email if email is not None else self.email,
        }
