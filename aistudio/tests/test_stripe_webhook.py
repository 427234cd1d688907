"""Stripe checkout and webhook routes."""

import hashlib
import hmac
import json
import time
from types import SimpleNamespace

import pytest
import stripe

WEBHOOK_SECRET = "whsec_test_secret"


def _sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def _event(event_type="checkout.session.completed", anon_session_id="anon_1_abc", customer="cus_123"):
    return json.dumps(
        {
            "id": "evt_1",
            "type": event_type,
            "data": {"object": {"id": "cs_1", "customer": customer, "metadata": {"anon_session_id": anon_session_id}}},
        }
    ).encode()


@pytest.fixture
def stripe_env(monkeypatch):
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)


def test_completed_checkout_records_payment(client, stripe_env):
    payload = _event()
    resp = client.post("/api/stripe/webhook", content=payload, headers={"stripe-signature": _sign(payload)})

    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    status = client.app.state.usage_gate.get_payment_status("anon_1_abc")
    assert status.has_payment is True
    assert status.stripe_customer_id == "cus_123"


def test_other_events_are_acknowledged(client, stripe_env):
    payload = _event(event_type="customer.created")
    resp = client.post("/api/stripe/webhook", content=payload, headers={"stripe-signature": _sign(payload)})

    assert resp.status_code == 200
    assert client.app.state.usage_gate.get_payment_status("anon_1_abc").has_payment is False


def test_missing_signature_is_400(client, stripe_env):
    resp = client.post("/api/stripe/webhook", content=_event())
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_signature"


def test_bad_signature_is_400(client, stripe_env):
    payload = _event()
    resp = client.post(
        "/api/stripe/webhook",
        content=payload,
        headers={"stripe-signature": _sign(payload, secret="whsec_wrong")},
    )
    assert resp.status_code == 400
    assert client.app.state.usage_gate.get_payment_status("anon_1_abc").has_payment is False


def test_webhook_without_secret_is_500(client, monkeypatch):
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.delenv("STRIPE_WEBHOOK_SECRET", raising=False)
    resp = client.post("/api/stripe/webhook", content=_event(), headers={"stripe-signature": "t=1,v1=x"})
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "configuration_error"


def test_checkout_creates_setup_session(client, stripe_env, monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    monkeypatch.setenv("BASE_URL", "https://studio.example")

    resp = client.post("/api/stripe/checkout")
    assert resp.status_code == 200
    assert resp.json() == {"url": "https://checkout.stripe.com/c/cs_test_1", "sessionId": "cs_test_1"}
    assert captured["mode"] == "setup"
    assert captured["metadata"]["anon_session_id"].startswith("anon_")
    assert captured["success_url"].startswith("https://studio.example/dashboard?setup=success")
    assert captured["cancel_url"] == "https://studio.example/dashboard?setup=cancelled"


def test_checkout_ignores_client_supplied_return_url(client, stripe_env, monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(id="cs_test_2", url="https://checkout.stripe.com/c/cs_test_2")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    monkeypatch.setenv("BASE_URL", "https://studio.example")

    resp = client.post("/api/stripe/checkout", json={"returnUrl": "https://elsewhere.example"})
    assert resp.status_code == 200
    assert captured["success_url"] == "https://studio.example/dashboard?setup=success&session_id={CHECKOUT_SESSION_ID}"
    assert "elsewhere.example" not in captured["cancel_url"]


def test_checkout_vendor_error_is_500(client, stripe_env, monkeypatch):
    def fail(**kwargs):
        raise stripe.InvalidRequestError("No such price", param=None)

    monkeypatch.setattr(stripe.checkout.Session, "create", fail)
    resp = client.post("/api/stripe/checkout", json={})
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "upstream_error"
