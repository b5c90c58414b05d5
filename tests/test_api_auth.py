from urllib.parse import parse_qs, urlparse

import pytest

import services.auth_session as auth_session_module
from config import settings
from models.log import Log
from models.users import User
from utils import tokenJWT
from conftest import PASSWORD, create_item, create_user, sign_in


def test_sign_up_creates_customer(client, db):
    response = client.post("/auth/sign-up", json={
        "email": "New@Example.com", "password": "secret1", "full_name": "Ola Nowak",
    })

    assert response.status_code == 201
    assert response.json()["email"] == "new@example.com"
    user = db.query(User).filter(User.email == "new@example.com").one()
    assert user.role_record.role == "customer"


def test_sign_up_existing_account(client, customer):
    response = client.post("/auth/sign-up", json={
        "email": customer.email, "password": "secret1", "full_name": "Jan",
    })
    assert response.status_code == 409
    assert response.json() == {
        "detail": "Account already exists. Please sign in instead.",
        "kind": "already_registered",
    }


def test_sign_up_short_password(client):
    response = client.post("/auth/sign-up", json={
        "email": "ola@example.com", "password": "123", "full_name": "Ola",
    })
    assert response.status_code == 400
    assert response.json()["kind"] == "validation"


def test_sign_in_customer_goes_home(client, customer):
    body = sign_in(client)

    assert body["role"] == "customer"
    assert body["redirect_to"] == "/"
    assert body["pending_redirect"] is False
    assert body["message"] == "Welcome back!"


def test_sign_in_admin_goes_to_admin(client, admin):
    body = sign_in(client, "admin@example.com")

    assert body["role"] == "admin"
    assert body["redirect_to"] == "/admin"
    assert body["message"] == "Welcome Admin!"


def test_sign_in_without_role_record_keeps_redirect_pending(client, db):
    user = create_user(db, email="ghost@example.com")
    db.delete(user.role_record)
    db.commit()

    body = sign_in(client, "ghost@example.com")
    assert body["role"] is None
    assert body["redirect_to"] is None
    assert body["pending_redirect"] is True


def test_invalid_credentials(client, customer, db):
    response = client.post("/auth/sign-in", json={"email": customer.email, "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json()["kind"] == "invalid_credentials"
    assert db.query(Log).filter(Log.action == "LOGIN", Log.status == "FAIL").count() == 1


def test_unconfirmed_email(client, db, monkeypatch):
    monkeypatch.setattr(settings, "REQUIRE_EMAIL_CONFIRMATION", True)
    mails = []
    monkeypatch.setattr(auth_session_module, "send_mail", lambda to, subject, body: mails.append(body))

    client.post("/auth/sign-up", json={"email": "ola@example.com", "password": "secret1", "full_name": "Ola"})
    response = client.post("/auth/sign-in", json={"email": "ola@example.com", "password": "secret1"})
    assert response.status_code == 403
    assert response.json()["kind"] == "email_not_confirmed"

    token = parse_qs(urlparse(mails[0].split(": ", 1)[1]).query)["token"][0]
    assert client.get("/auth/confirm", params={"token": token}).status_code == 200
    assert client.post("/auth/sign-in", json={"email": "ola@example.com", "password": "secret1"}).status_code == 200


def test_session_restore(client, customer):
    token = sign_in(client)["access_token"]

    anonymous = client.get("/auth/session").json()
    assert anonymous["user"] is None
    assert anonymous["loading"] is False

    state = client.get("/auth/session", headers={"Authorization": f"Bearer {token}"}).json()
    assert state["user"]["email"] == customer.email
    assert state["role"] == "customer"


def test_sign_out_revokes_token_and_drops_cart(client, customer, db):
    item = create_item(db)
    headers = {"Authorization": f"Bearer {sign_in(client)['access_token']}"}
    client.post("/cart/items", json={"item_id": item.id, "variant_id": item.variants[0].id}, headers=headers)

    assert client.post("/auth/sign-out", headers=headers).json() == {"message": "Logged out successfully"}
    assert client.get("/auth/session", headers=headers).json()["user"] is None

    fresh = {"Authorization": f"Bearer {sign_in(client)['access_token']}"}
    assert client.get("/cart", headers=fresh).json()["items"] == []


def test_password_reset_flow(client, customer, monkeypatch):
    mails = []
    monkeypatch.setattr(auth_session_module, "send_mail", lambda to, subject, body: mails.append((to, body)))

    response = client.post("/auth/password-reset", json={"email": customer.email})
    assert response.json() == {"message": "Password reset link sent to your email!"}

    to, body = mails[0]
    assert to == customer.email
    link = urlparse(body.split(": ", 1)[1])
    assert link.path == "/reset-password"
    params = {k: v[0] for k, v in parse_qs(link.query).items()}
    assert params["type"] == "recovery"

    response = client.post("/reset-password", json={
        "access_token": params["access_token"],
        "refresh_token": params["refresh_token"],
        "type": "recovery",
        "password": "brand-new",
        "confirm_password": "brand-new",
    })
    assert response.status_code == 200

    assert client.post("/auth/sign-in", json={"email": customer.email, "password": PASSWORD}).status_code == 401
    assert client.post("/auth/sign-in", json={"email": customer.email, "password": "brand-new"}).status_code == 200


def test_password_reset_unknown_email_answers_the_same(client, monkeypatch):
    mails = []
    monkeypatch.setattr(auth_session_module, "send_mail", lambda *args: mails.append(args))

    response = client.post("/auth/password-reset", json={"email": "nobody@example.com"})
    assert response.status_code == 200
    assert mails == []


def test_reset_password_mismatch(client, customer):
    access, refresh = tokenJWT.create_recovery_tokens(customer.email)
    response = client.post("/reset-password", json={
        "access_token": access, "refresh_token": refresh, "type": "recovery",
        "password": "brand-new", "confirm_password": "brand-old",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Passwords do not match"


def test_reset_password_rejects_access_token(client, customer):
    token = sign_in(client)["access_token"]
    response = client.post("/reset-password", json={
        "access_token": token, "refresh_token": token, "type": "recovery",
        "password": "brand-new", "confirm_password": "brand-new",
    })
    assert response.status_code == 400
    assert response.json()["kind"] == "generic"


def test_google_not_configured(client, monkeypatch):
    monkeypatch.setattr(auth_session_module.google_client, "client_id", "")
    response = client.get("/auth/google")
    assert response.status_code == 400


class FakeGoogle:
    client_id = "client-id"

    def authorization_url(self, state):
        return f"https://accounts.example.com/auth?state={state}"

    async def exchange_code(self, code):
        assert code == "auth-code"
        return "provider-token"

    async def fetch_userinfo(self, token):
        return {"email": "Google.User@example.com", "name": "Google User"}


@pytest.fixture
def fake_google(monkeypatch):
    fake = FakeGoogle()
    monkeypatch.setattr(auth_session_module, "google_client", fake)
    return fake


def test_google_sign_in_creates_customer(client, db, fake_google):
    url = client.get("/auth/google").json()["url"]
    state = parse_qs(urlparse(url).query)["state"][0]

    response = client.get("/auth/callback/google", params={"code": "auth-code", "state": state})

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["auth_provider"] == "google"
    assert body["role"] == "customer"
    assert body["redirect_to"] == "/"
    user = db.query(User).filter(User.email == "google.user@example.com").one()
    assert user.password_hash is None


def test_google_callback_rejects_forged_state(client, fake_google):
    response = client.get("/auth/callback/google", params={"code": "auth-code", "state": "forged"})
    assert response.status_code == 400
