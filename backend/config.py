# backend/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    RECOVERY_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./storefront.db"

    FRONTEND_URL: str = "http://localhost:5173"
    # Public backend URL used for OAuth callbacks
    BACKEND_URL: str = "http://127.0.0.1:8000"

    # Sign-up requires clicking the e-mailed confirmation link
    REQUIRE_EMAIL_CONFIRMATION: bool = False

    # Simulated card/UPI processing (stand-in for a payment gateway)
    PAYMENT_SIMULATION_DELAY: float = 2.0
    PAYMENT_SUCCESS_RATE: float = 0.9

    # Federated sign-in (Google OAuth 2)
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_AUTH_URL: str = "https://accounts.google.com/o/oauth2/v2/auth"
    GOOGLE_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    GOOGLE_USERINFO_URL: str = "https://openidconnect.googleapis.com/v1/userinfo"

    # Outgoing mail; without SMTP_HOST messages are only logged
    SMTP_HOST: str = ""
    SMTP_PORT: int = 25
    MAIL_FROM: str = "no-reply@storefront.local"

    LOG_LEVEL: str = "INFO"
    UPLOAD_DIR: str = "static/uploads"

settings = Settings()
