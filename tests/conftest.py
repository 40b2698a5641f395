from decimal import Decimal

import pytest
import requests
from werkzeug.security import generate_password_hash

from schoolbooks import create_app
from schoolbooks.auth_mw import make_token
from schoolbooks.db import db
from schoolbooks.models import Product, ProductStatus, Tier, User
from schoolbooks.services.seed import seed_all
from schoolbooks.utils.http_client import HttpClient

PASSWORD = "Secret#123"


class FakeResponse:
    def __init__(self, text="", status_code=200, json_data=None):
        self.text = text
        self.status_code = status_code
        self._json = json_data

    def json(self):
        return self._json


class RecordingBroadcaster:
    """Keeps published events so tests can assert on them."""

    def __init__(self):
        self.events = []

    def publish(self, channel, payload):
        self.events.append((channel, payload))

    def for_channel(self, channel):
        return [p for c, p in self.events if c == channel]


class FakeSession:
    """Stands in for ``requests.Session``: records calls, replays canned responses."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []
        self.max_redirects = 30

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SECRET_KEY": "test-secret-key",
        "JWT_SECRET": "test-jwt-secret-0123456789abcdef0123456789",
        "PWNED_CHECK_ENABLED": False,
        "REDIS_URL": None,
    })
    app.extensions["broadcaster"] = RecordingBroadcaster()
    with app.app_context():
        seed_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def broadcaster(app):
    return app.extensions["broadcaster"]


def tier_id(name: str) -> int:
    return Tier.query.filter_by(name=name).one().id


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(full_name="Test User", email=None, tier="Premium", **kw):
        counter["n"] += 1
        u = User(
            full_name=full_name,
            email=email or f"user{counter['n']}@example.com",
            password=generate_password_hash(PASSWORD),
            tier_id=tier_id(tier) if tier else None,
            **kw,
        )
        db.session.add(u)
        db.session.commit()
        return u

    return _make


@pytest.fixture
def make_product(app):
    def _make(seller, name="Calculus", price="25.00", status=ProductStatus.SELLING, **kw):
        p = Product(
            name=name,
            price=Decimal(price),
            seller_id=seller.id,
            status=status,
            **kw,
        )
        db.session.add(p)
        db.session.commit()
        return p

    return _make


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        return {"Authorization": f"Bearer {make_token(user)}"}

    return _headers


@pytest.fixture
def seller(make_user):
    return make_user(full_name="Sam Seller", email="seller@example.com")


@pytest.fixture
def buyer(make_user):
    return make_user(full_name="Bea Buyer", email="buyer@example.com")


@pytest.fixture
def product(make_product, seller):
    return make_product(seller, name="Linear Algebra", price="40.00")


@pytest.fixture
def fake_http(app):
    """Swap the shared HTTP client for one backed by a FakeSession."""
    session = FakeSession()
    app.extensions["http_client"] = HttpClient(timeout=1, session=session)
    return session


def transport_error(msg="connection refused"):
    return requests.ConnectionError(msg)
