# backend/routes/auth.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from schemas import user as schemas
from services.auth_session import AuthSession
from utils.auth_deps import get_auth_session, require_user

router = APIRouter(tags=["Auth"])


def _session_response(session: AuthSession, message: str) -> schemas.SessionResponse:
    # Destination is only chosen once both user and role are known
    redirect_to = session.redirect_target()
    return schemas.SessionResponse(
        access_token=session.access_token,
        user=schemas.UserResponse.model_validate(session.user),
        role=session.role,
        pending_redirect=session.pending_redirect,
        redirect_to=redirect_to,
        message=message,
    )


# Register a new account
@router.post("/auth/sign-up", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def sign_up(payload: schemas.SignUpRequest, request: Request, db: Session = Depends(get_db)):
    session = AuthSession(db, request)
    return session.sign_up(payload.email, payload.password, payload.full_name)


# Authenticate with e-mail and password
@router.post("/auth/sign-in", response_model=schemas.SessionResponse)
def sign_in(payload: schemas.SignInRequest, request: Request, db: Session = Depends(get_db)):
    session = AuthSession(db, request)
    session.sign_in(payload.email, payload.password)
    message = "Welcome Admin!" if session.is_admin else "Welcome back!"
    return _session_response(session, message)


@router.post("/auth/sign-out", response_model=schemas.MessageResponse)
def sign_out(session: AuthSession = Depends(require_user)):
    session.sign_out()
    return {"message": "Logged out successfully"}


# Current session; loading is always resolved by the time this answers
@router.get("/auth/session", response_model=schemas.SessionState)
def current_session(session: AuthSession = Depends(get_auth_session)):
    return schemas.SessionState(
        user=schemas.UserResponse.model_validate(session.user) if session.user else None,
        role=session.role,
        loading=session.loading,
        admin_login=session.admin_login,
    )


@router.get("/auth/confirm", response_model=schemas.MessageResponse)
def confirm_email(token: str, request: Request, db: Session = Depends(get_db)):
    AuthSession(db, request).confirm_email(token)
    return {"message": "Email confirmed. You can now sign in."}


@router.post("/auth/password-reset", response_model=schemas.MessageResponse)
def request_password_reset(payload: schemas.PasswordResetRequest, request: Request, db: Session = Depends(get_db)):
    AuthSession(db, request).request_password_reset(payload.email)
    return {"message": "Password reset link sent to your email!"}


# Exchange the reset link's token pair for a session and set the new password
@router.post("/reset-password", response_model=schemas.MessageResponse)
def reset_password(payload: schemas.ResetPasswordPayload, request: Request, db: Session = Depends(get_db)):
    session = AuthSession(db, request)
    session.exchange_recovery_session(payload.access_token, payload.refresh_token, payload.type)
    session.update_password(payload.password, payload.confirm_password)
    return {"message": "Password updated successfully! You can now sign in."}


# Federated sign-in: where to send the browser
@router.get("/auth/google", response_model=schemas.FederatedStart)
def google_sign_in(request: Request, db: Session = Depends(get_db)):
    url = AuthSession(db, request).sign_in_with_federated_identity("google")
    return {"url": url}


@router.get("/auth/callback/google", response_model=schemas.SessionResponse)
async def google_callback(code: str, state: str, request: Request, db: Session = Depends(get_db)):
    session = AuthSession(db, request)
    await session.complete_federated_sign_in(code, state)
    return _session_response(session, "Welcome Admin!" if session.is_admin else "Welcome back!")
