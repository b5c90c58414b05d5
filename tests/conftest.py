import os
import tempfile

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="storefront-uploads-"))
os.environ.setdefault("PAYMENT_SIMULATION_DELAY", "0")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base, get_db
import models.users, models.menu, models.address, models.order, models.log  # noqa: F401
from main import app
from models.menu import FoodItem, FoodItemVariant
from models.users import User, UserRole
from routes.payment import get_payment_simulator
from services.cart_store import carts
from services.checkout import PaymentSimulator
from utils.hashing import get_password_hash
from utils.realtime import change_feed

PASSWORD = "secret123"


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def clean_state():
    carts.clear()
    change_feed.clear()
    yield
    carts.clear()
    change_feed.clear()


@pytest.fixture
def payments():
    # Instant, always-successful gateway unless a test swaps it
    return PaymentSimulator(delay=0, success_rate=1.0)


@pytest.fixture
def client(session_factory, payments):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_simulator] = lambda: payments
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def create_user(db, email="jan@example.com", password=PASSWORD, role="customer", full_name="Jan Kowalski"):
    user = User(email=email, password_hash=get_password_hash(password), full_name=full_name,
                email_confirmed=True, auth_provider="email")
    user.role_record = UserRole(role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_item(db, name="Margherita Pizza", category="Pizza", variants=(("Regular", 100.0),),
                in_stock=True, description=None):
    item = FoodItem(name=name, category=category, description=description,
                    image_url="/placeholder.svg", in_stock=in_stock)
    item.variants = [FoodItemVariant(label=label, price=price) for label, price in variants]
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def sign_in(client, email="jan@example.com", password=PASSWORD):
    response = client.post("/auth/sign-in", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def auth_headers(client, email="jan@example.com", password=PASSWORD):
    return {"Authorization": f"Bearer {sign_in(client, email, password)['access_token']}"}


@pytest.fixture
def customer(db):
    return create_user(db)


@pytest.fixture
def admin(db):
    return create_user(db, email="admin@example.com", role="admin", full_name="Store Admin")


@pytest.fixture
def customer_headers(client, customer):
    return auth_headers(client)


@pytest.fixture
def admin_headers(client, admin):
    return auth_headers(client, "admin@example.com")
