"""Shared fixtures: an in-memory Mongo per test, seeded users and an HTTP client."""

import os

# must be set before settings is first imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ["RATE_LIMIT_ENABLED"] = "false"

from datetime import datetime

from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
import pytest
import pytest_asyncio

from db.db_operation import mongo_conn
from main import app
from models.restaurant import RestaurantCreate
from models.user import Role
from services import auth_service, restaurant_service
from utils.hash import hash_password
from utils.jwt_handler import build_token_payload, create_access_token

PASSWORD = "Secret123"


@pytest.fixture(autouse=True)
def mongo():
    """Fresh in-memory database for every test."""
    mongo_conn.bind(AsyncMongoMockClient())
    yield mongo_conn


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Captures every code the auth service tries to deliver."""
    sent = []

    def _sender(kind):
        def _send(destination, code):
            sent.append({"kind": kind, "destination": destination, "code": code})
            return True
        return _send

    monkeypatch.setattr(auth_service, "send_verification_email", _sender("verification"))
    monkeypatch.setattr(auth_service, "send_verification_sms", _sender("verification"))
    monkeypatch.setattr(auth_service, "send_password_reset_email", _sender("reset"))
    monkeypatch.setattr(auth_service, "send_password_reset_sms", _sender("reset"))
    return sent


async def make_user(email, role=Role.USER, first_name="Test", phone_number=None):
    now = datetime.utcnow()
    doc = {
        "email": email,
        "first_name": first_name,
        "last_name": "User",
        "password": hash_password(PASSWORD),
        "role": role.value,
        "token_version": 0,
        "disabled": False,
        "is_verified": True,
        "created_at": now,
        "updated_at": now,
    }
    if phone_number:
        doc["phone_number"] = phone_number
    await mongo_conn.users_collection.insert_one(doc)
    token = create_access_token(build_token_payload(doc))
    return {
        "doc": doc,
        "id": str(doc["_id"]),
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest_asyncio.fixture
async def user():
    return await make_user("diner@example.com", first_name="Dina", phone_number="+15550000001")


@pytest_asyncio.fixture
async def other_user():
    return await make_user("other@example.com", first_name="Otto")


@pytest_asyncio.fixture
async def admin():
    return await make_user("admin@example.com", role=Role.ADMIN, first_name="Ada")


@pytest_asyncio.fixture
async def owner():
    return await make_user("owner@example.com", role=Role.RESTAURANT_OWNER, first_name="Olga")


@pytest_asyncio.fixture
async def other_owner():
    return await make_user("owner2@example.com", role=Role.RESTAURANT_OWNER, first_name="Omar")


def restaurant_payload(**overrides):
    data = {
        "name": "Trattoria Roma",
        "description": "Wood fired pizza",
        "address": "1 Main Street",
        "phone_number": "+15551112222",
        "cuisine": ["Italian"],
        "price_range": "MODERATE",
        "rating": 4.5,
        "capacity": 4,
    }
    data.update(overrides)
    return data


@pytest_asyncio.fixture
async def restaurant(owner):
    """Active restaurant with four seats per slot, owned by ``owner``."""
    return await restaurant_service.create_restaurant(
        RestaurantCreate(**restaurant_payload()), owner_id=owner["id"]
    )


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
