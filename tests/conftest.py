"""Pytest configuration: throw-away SQLite database and auth helpers."""

import os
import tempfile

# Must happen before the application modules read their configuration
_TMP_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'storefront_test.db')}"
os.environ["RESEND_API_KEY"] = ""
os.environ["ORDER_PRICE_POLICY"] = "client"

import pytest
from fastapi.testclient import TestClient

import main
from database import Base, engine, SessionLocal
from models.product import Product
from models.users import User
from utils.inventory import apply_stock_level
from utils.roles import grant_role
from utils.tokenJWT import create_access_token


@pytest.fixture(autouse=True)
def reset_schema():
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def make_product(db):
    def _make(name="Classic Hoodie", price=20.0, quantity=5, **extra):
        is_sold_out = extra.pop("is_sold_out", None)
        product = Product(name=name, price=price, **extra)
        apply_stock_level(product, quantity=quantity, is_sold_out=is_sold_out)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make


@pytest.fixture
def make_user(db):
    def _make(email="shopper@example.com", admin=False):
        user = User(email=email)
        db.add(user)
        db.commit()
        db.refresh(user)
        grant_role(db, user, "user")
        if admin:
            grant_role(db, user, "admin")
        return user
    return _make


def auth_headers(user):
    token = create_access_token(data={"sub": user.email, "uid": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def shopper(make_user):
    return make_user("shopper@example.com")


@pytest.fixture
def admin(make_user):
    return make_user("owner@example.com", admin=True)


@pytest.fixture
def headers_for():
    return auth_headers
