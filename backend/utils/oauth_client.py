# backend/utils/oauth_client.py
import httpx
import logging
from urllib.parse import urlencode, urljoin
from config import settings

logger = logging.getLogger(__name__)

class GoogleOAuthClient:
    def __init__(self):
        # Initialize configuration and callback URL
        self.client_id = settings.GOOGLE_CLIENT_ID
        self.client_secret = settings.GOOGLE_CLIENT_SECRET
        self.auth_url = settings.GOOGLE_AUTH_URL
        self.token_url = settings.GOOGLE_TOKEN_URL
        self.userinfo_url = settings.GOOGLE_USERINFO_URL
        self.redirect_uri = urljoin(settings.BACKEND_URL, "/auth/callback/google")

    def authorization_url(self, state: str) -> str:
        # Provider consent page the client is sent to
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        }
        return f"{self.auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        # Trade the authorization code for an access token
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
        }
        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(self.token_url, data=payload)
                response.raise_for_status()
                return response.json()["access_token"]
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                logger.error(f"Google token exchange error: {e}")
                raise

    async def fetch_userinfo(self, token: str) -> dict:
        # Returns at least "email", usually "name" as well
        headers = {"Authorization": f"Bearer {token}"}
        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(self.userinfo_url, headers=headers)
                response.raise_for_status()
                return response.json()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                logger.error(f"Google userinfo error: {e}")
                raise

google_client = GoogleOAuthClient()
