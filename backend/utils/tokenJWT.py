# utils/tokenJWT.py
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import jwt, JWTError
from fastapi.security import HTTPBearer

from config import settings

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

# Token purposes; a token is only accepted for the purpose it was minted for
ACCESS = "access"
RECOVERY = "recovery"
REFRESH = "refresh"
CONFIRM = "confirm"
OAUTH_STATE = "oauth_state"

# Missing credentials are not an error here, the route guards decide
bearer_scheme = HTTPBearer(auto_error=False)


def _encode(data: dict, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({"type": token_type, "exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


# Generate a new JWT access token
def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    return _encode(data, ACCESS, expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))


# Access/refresh pair embedded in a password reset link
def create_recovery_tokens(email: str) -> Tuple[str, str]:
    lifetime = timedelta(minutes=settings.RECOVERY_TOKEN_EXPIRE_MINUTES)
    session_id = uuid.uuid4().hex
    access = _encode({"sub": email, "sid": session_id}, RECOVERY, lifetime)
    refresh = _encode({"sub": email, "sid": session_id}, REFRESH, lifetime)
    return access, refresh


def create_confirmation_token(email: str) -> str:
    return _encode({"sub": email}, CONFIRM, timedelta(days=1))


def create_state_token() -> str:
    return _encode({"nonce": uuid.uuid4().hex}, OAUTH_STATE, timedelta(minutes=10))


def decode_token(token: str, expected_type: Optional[str] = None) -> dict:
    """Decode and check a token; raises ``JWTError`` on any mismatch."""
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    if expected_type is not None and payload.get("type") != expected_type:
        raise JWTError(f"Expected a {expected_type} token")
    return payload
