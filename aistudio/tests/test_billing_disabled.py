"""Billing degrades to configuration errors when Stripe is not set up."""

import pytest

from aistudio.core.errors import ConfigurationError
from aistudio.features.billing.service import billing_enabled, get_provider, start_checkout, webhooks_enabled


def test_billing_disabled_when_no_stripe_key(monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    assert billing_enabled() is False
    assert webhooks_enabled() is False
    assert get_provider() is None


def test_webhooks_need_both_secrets(monkeypatch):
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test")
    monkeypatch.delenv("STRIPE_WEBHOOK_SECRET", raising=False)
    assert billing_enabled() is True
    assert webhooks_enabled() is False


def test_start_checkout_raises_when_disabled(monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        start_checkout("anon_1_abc")


def test_checkout_route_is_500_when_disabled(client, monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    resp = client.post("/api/stripe/checkout")
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "configuration_error"
    assert "STRIPE_SECRET_KEY" in resp.json()["detail"]
