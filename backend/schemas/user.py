from pydantic import BaseModel, EmailStr, ConfigDict
from typing import Optional

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for e-mail/password sign-in
class SignInRequest(UserBase):
    password: str

# Schema for account registration
class SignUpRequest(UserBase):
    password: str
    full_name: str

# Schema for requesting a password reset e-mail
class PasswordResetRequest(BaseModel):
    email: str

# Token pair from the reset link plus the new password
class ResetPasswordPayload(BaseModel):
    access_token: str
    refresh_token: str
    type: str
    password: str
    confirm_password: str

# Output schema for user profile details
class UserResponse(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: Optional[str] = None
    auth_provider: str = "email"

# Result of a successful sign-in; redirect_to stays empty while the role is unresolved
class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    role: Optional[str] = None
    pending_redirect: bool = False
    redirect_to: Optional[str] = None
    message: Optional[str] = None

# Current session as seen by the client
class SessionState(BaseModel):
    user: Optional[UserResponse] = None
    role: Optional[str] = None
    loading: bool = False
    admin_login: bool = False

class FederatedStart(BaseModel):
    url: str

class MessageResponse(BaseModel):
    message: str
