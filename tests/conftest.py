"""Pytest configuration and fixtures"""
import hashlib
import hmac
import json
import os
import time

import pytest

# Set test environment variables
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("FRONTEND_URL", "https://shop.example.com")

from app import app as flask_app  # noqa: E402
from storage import MemoryStorage  # noqa: E402

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(autouse=True)
def clean_notification_env(monkeypatch):
    """Every test starts with notification sinks disabled"""
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    for name in ("NOTIFICATION_EMAIL", "RESEND_API_KEY", "DISCORD_WEBHOOK_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def client():
    """Flask test client"""
    flask_app.config["TESTING"] = True
    with flask_app.test_client() as test_client:
        yield test_client


@pytest.fixture
def memory_storage():
    return MemoryStorage()


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header the way Stripe does"""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type: str = "checkout.session.completed", **session_fields) -> str:
    session = {
        "id": "cs_test_abc",
        "object": "checkout.session",
        "amount_total": 50100,
        "customer_email": "ana@example.com",
        "metadata": {
            "customer_name": "Ana",
            "customer_phone": "5512345678",
            "customer_address": "Av. Reforma 1, CDMX",
        },
    }
    session.update(session_fields)
    return json.dumps({
        "id": "evt_test_1",
        "object": "event",
        "type": event_type,
        "data": {"object": session},
    })


@pytest.fixture
def sample_items():
    return [
        {"id": "A", "name": "Food", "price": 250.5, "qty": 2},
        {"id": "B", "name": "Vitamins", "price": 199, "qty": 1},
    ]
