import pytest
import stripe

from app.config import settings
from app.models import Job, JobPayment, Notification
from conftest import bearer, create_job, create_tier


@pytest.fixture
def stripe_keys(monkeypatch):
    monkeypatch.setattr(settings.stripe, "stripe_secret_key", "sk_test_123")
    monkeypatch.setattr(settings.stripe, "stripe_webhook_secret", "whsec_test")


@pytest.fixture
def intents(monkeypatch):
    created = []

    def fake_create(**kwargs):
        created.append(kwargs)
        return {"id": f"pi_{len(created)}", "client_secret": f"pi_{len(created)}_secret"}

    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)
    return created


@pytest.fixture
def webhook_events(monkeypatch):
    """construct_event accepts signature "valid" and returns the queued event."""
    queued = []

    def fake_construct_event(payload, sig_header, secret):
        assert secret == "whsec_test"
        if sig_header != "valid":
            raise stripe.SignatureVerificationError("bad signature", sig_header)
        return queued[-1]

    monkeypatch.setattr(stripe.Webhook, "construct_event", fake_construct_event)
    return queued


def succeeded(intent_id):
    return {
        "id": "evt_1",
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": intent_id, "latest_charge": "ch_1"}},
    }


def post_webhook(client, signature="valid"):
    headers = {"Stripe-Signature": signature} if signature else {}
    return client.post("/api/payments/webhook", content=b'{"id": "evt_1"}', headers=headers)


# =============================================================================
# Payment intents
# =============================================================================

def test_create_intent_records_pending_payment(client, db, stripe_keys, intents, employer, tier):
    job = create_job(db, employer, tier, status="DRAFT")

    response = client.post(
        "/api/payments/create-intent",
        json={"job_id": job.id, "tier_id": tier.id},
        headers=bearer(employer),
    )

    assert response.status_code == 200
    assert response.json()["data"]["clientSecret"] == "pi_1_secret"
    assert intents[0]["amount"] == 29900
    assert intents[0]["metadata"]["jobId"] == str(job.id)
    payment = db.query(JobPayment).one()
    assert payment.status == "pending"
    assert payment.stripe_payment_intent_id == "pi_1"


def test_create_intent_without_keys_is_503(client, db, employer, tier):
    job = create_job(db, employer, tier, status="DRAFT")
    response = client.post(
        "/api/payments/create-intent",
        json={"job_id": job.id, "tier_id": tier.id},
        headers=bearer(employer),
    )
    assert response.status_code == 503
    assert response.json()["error"] == "Payments not configured"


def test_create_intent_tier_mismatch(client, db, stripe_keys, intents, employer, tier):
    job = create_job(db, employer, tier, status="DRAFT")
    other = create_tier(db, "Premium", 79900)

    response = client.post(
        "/api/payments/create-intent",
        json={"job_id": job.id, "tier_id": other.id},
        headers=bearer(employer),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Tier mismatch"
    assert intents == []


def test_create_intent_for_someone_elses_job(client, db, stripe_keys, intents, employer, tier):
    from conftest import create_user

    rival = create_user(db, "EMPLOYER", "rival@example.com", admin_approved=True)
    job = create_job(db, rival, tier, status="DRAFT")

    response = client.post(
        "/api/payments/create-intent",
        json={"job_id": job.id, "tier_id": tier.id},
        headers=bearer(employer),
    )
    assert response.status_code == 404


def test_stripe_failure_is_502(client, db, stripe_keys, monkeypatch, employer, tier):
    job = create_job(db, employer, tier, status="DRAFT")

    def broken(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.PaymentIntent, "create", broken)
    response = client.post(
        "/api/payments/create-intent",
        json={"job_id": job.id, "tier_id": tier.id},
        headers=bearer(employer),
    )
    assert response.status_code == 502
    assert db.query(JobPayment).count() == 0


# =============================================================================
# Webhook
# =============================================================================

def test_webhook_without_secret_is_503(client, monkeypatch):
    monkeypatch.setattr(settings.stripe, "stripe_webhook_secret", None)
    response = post_webhook(client)
    assert response.status_code == 503
    assert response.json()["error"] == "Webhook not configured"


def test_webhook_requires_signature(client, stripe_keys, webhook_events):
    response = post_webhook(client, signature=None)
    assert response.status_code == 400
    assert response.json()["error"] == "No signature"


def test_webhook_rejects_bad_signature(client, db, stripe_keys, webhook_events, employer, tier):
    job = create_job(db, employer, tier, status="DRAFT")
    db.add(JobPayment(
        job_id=job.id, employer_id=job.employer_id, tier_id=tier.id,
        amount_cents=29900, stripe_payment_intent_id="pi_9",
    ))
    db.commit()
    webhook_events.append(succeeded("pi_9"))

    response = post_webhook(client, signature="forged")

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid signature"
    db.expire_all()
    assert db.query(JobPayment).one().status == "pending"
    assert db.get(Job, job.id).status == "DRAFT"


def test_replayed_success_moves_job_once(client, db, stripe_keys, intents, webhook_events, employer, tier):
    job = create_job(db, employer, tier, status="DRAFT")
    client.post(
        "/api/payments/create-intent",
        json={"job_id": job.id, "tier_id": tier.id},
        headers=bearer(employer),
    )
    webhook_events.append(succeeded("pi_1"))

    first = post_webhook(client)
    second = post_webhook(client)

    assert first.status_code == 200
    assert first.json()["data"] == {"received": True}
    assert second.status_code == 200

    db.expire_all()
    payment = db.query(JobPayment).one()
    assert payment.status == "paid"
    assert payment.stripe_charge_id == "ch_1"
    assert db.get(Job, job.id).status == "PENDING_ADMIN_REVIEW"
    received = db.query(Notification).filter(Notification.type == "PAYMENT_RECEIVED").all()
    assert len(received) == 1
    assert received[0].user_id == employer.id


def test_paid_job_cannot_be_paid_again(client, db, stripe_keys, intents, webhook_events, employer, tier):
    job = create_job(db, employer, tier, status="DRAFT")
    client.post("/api/payments/create-intent", json={"job_id": job.id, "tier_id": tier.id}, headers=bearer(employer))
    webhook_events.append(succeeded("pi_1"))
    post_webhook(client)

    again = client.post(
        "/api/payments/create-intent",
        json={"job_id": job.id, "tier_id": tier.id},
        headers=bearer(employer),
    )
    assert again.status_code == 400
    assert again.json()["error"] == "Job already paid"


def test_failed_payment_is_recorded(client, db, stripe_keys, intents, webhook_events, employer, tier):
    job = create_job(db, employer, tier, status="DRAFT")
    client.post("/api/payments/create-intent", json={"job_id": job.id, "tier_id": tier.id}, headers=bearer(employer))
    webhook_events.append({
        "id": "evt_2",
        "type": "payment_intent.payment_failed",
        "data": {"object": {"id": "pi_1"}},
    })

    assert post_webhook(client).status_code == 200
    db.expire_all()
    assert db.query(JobPayment).one().status == "failed"
    assert db.get(Job, job.id).status == "DRAFT"


def test_unknown_events_are_acknowledged(client, stripe_keys, webhook_events):
    webhook_events.append({"id": "evt_3", "type": "charge.refunded", "data": {"object": {}}})
    response = post_webhook(client)
    assert response.status_code == 200
