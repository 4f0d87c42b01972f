import pytest
import stripe

from app.config import settings
from app.models import Subscription
from app.services.payments import handle_webhook_event
from conftest import bearer, create_tier


@pytest.fixture
def billing(monkeypatch):
    monkeypatch.setattr(settings.stripe, "stripe_secret_key", "sk_test_123")
    calls = {"customers": [], "subscriptions": [], "modified": [], "cancelled": []}

    def create_customer(**kwargs):
        calls["customers"].append(kwargs)
        return {"id": "cus_1"}

    def create_subscription(**kwargs):
        calls["subscriptions"].append(kwargs)
        return {
            "id": f"sub_{len(calls['subscriptions'])}",
            "items": {"data": [{"current_period_start": 1767225600, "current_period_end": 1769904000}]},
            "latest_invoice": {"payment_intent": {"client_secret": "pi_sub_secret"}},
        }

    def modify(subscription_id, **kwargs):
        calls["modified"].append((subscription_id, kwargs))
        return {"id": subscription_id}

    def cancel(subscription_id, **kwargs):
        calls["cancelled"].append(subscription_id)
        return {"id": subscription_id}

    monkeypatch.setattr(stripe.Customer, "create", create_customer)
    monkeypatch.setattr(stripe.Subscription, "create", create_subscription)
    monkeypatch.setattr(stripe.Subscription, "modify", modify)
    monkeypatch.setattr(stripe.Subscription, "cancel", cancel)
    return calls


@pytest.fixture
def monthly_tier(db):
    return create_tier(db, "Unlimited", 149900, stripe_price_id="price_monthly")


def subscribe(client, employer, tier):
    return client.post("/api/subscriptions/create", json={"tier_id": tier.id}, headers=bearer(employer))


def test_create_subscription(client, db, billing, employer, monthly_tier):
    response = subscribe(client, employer, monthly_tier)

    assert response.status_code == 201
    assert response.json()["data"]["clientSecret"] == "pi_sub_secret"
    assert billing["customers"][0]["email"] == "employer@example.com"
    assert billing["subscriptions"][0]["items"] == [{"price": "price_monthly"}]

    stored = db.query(Subscription).one()
    assert stored.status == "ACTIVE"
    assert stored.current_period_start is not None


def test_second_active_subscription_is_rejected(client, db, billing, employer, monthly_tier):
    subscribe(client, employer, monthly_tier)
    response = subscribe(client, employer, monthly_tier)
    assert response.status_code == 400
    assert response.json()["error"] == "Active subscription already exists"


def test_tier_without_recurring_price(client, billing, employer, tier):
    response = subscribe(client, employer, tier)
    assert response.status_code == 400
    assert response.json()["error"] == "Tier is not available as a subscription"


def test_cancel_defaults_to_period_end(client, db, billing, employer, monthly_tier):
    subscription_id = subscribe(client, employer, monthly_tier).json()["data"]["subscriptionId"]

    response = client.post(f"/api/subscriptions/{subscription_id}/cancel", headers=bearer(employer))

    assert response.status_code == 200
    assert response.json()["data"]["cancel_at_period_end"] is True
    assert response.json()["data"]["status"] == "ACTIVE"
    assert billing["modified"] == [("sub_1", {"cancel_at_period_end": True})]


def test_cancel_immediately(client, db, billing, employer, monthly_tier):
    subscription_id = subscribe(client, employer, monthly_tier).json()["data"]["subscriptionId"]

    response = client.post(
        f"/api/subscriptions/{subscription_id}/cancel",
        json={"cancel_at_period_end": False},
        headers=bearer(employer),
    )

    assert response.json()["data"]["status"] == "CANCELLED"
    assert billing["cancelled"] == ["sub_1"]

    again = client.post(f"/api/subscriptions/{subscription_id}/cancel", headers=bearer(employer))
    assert again.status_code == 400


def test_webhook_events_update_status(client, db, billing, employer, monthly_tier):
    subscribe(client, employer, monthly_tier)

    handle_webhook_event(db, {"type": "invoice.payment_failed", "data": {"object": {"subscription": "sub_1"}}})
    db.expire_all()
    assert db.query(Subscription).one().status == "PAST_DUE"

    handle_webhook_event(db, {"type": "customer.subscription.deleted", "data": {"object": {"id": "sub_1"}}})
    db.expire_all()
    stored = db.query(Subscription).one()
    assert stored.status == "CANCELLED"
    assert stored.cancelled_at is not None


def test_subscriptions_are_listed_per_employer(client, db, billing, employer, monthly_tier):
    subscribe(client, employer, monthly_tier)
    listed = client.get("/api/subscriptions", headers=bearer(employer)).json()["data"]
    assert [s["stripe_subscription_id"] for s in listed] == ["sub_1"]
