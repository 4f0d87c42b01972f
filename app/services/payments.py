"""
ExecBoard - Job posting payments and the Stripe webhook.

Flow:
    1. The employer asks for a PaymentIntent for one of their jobs
       (create_payment_intent) and confirms it client-side.
    2. Stripe calls the webhook; verify_webhook checks the signature and
       handle_webhook_event applies the event.

The "paid" transition is a conditional UPDATE on the payment row, so a
replayed or concurrent payment_intent.succeeded event finds nothing left
to update and neither moves the job nor notifies a second time.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import stripe
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from ..config import settings
from ..models import EmployerProfile, Job, JobPayment
from .notifications import notify_payment_received
from .stripe_client import PaymentError, field, get_stripe
from .subscriptions import SUBSCRIPTION_EVENTS, handle_subscription_event

logger = logging.getLogger("execboard.payments")

PAYABLE_JOB_STATUSES = {"DRAFT", "PENDING_PAYMENT"}


# -----------------------------------------------------------------------------
# Payment intents
# -----------------------------------------------------------------------------

def create_payment_intent(
    db: Session,
    user_id: int,
    employer_id: int,
    job_id: int,
    tier_id: int,
) -> Dict[str, Any]:
    """
    Create a Stripe PaymentIntent for a job's tier and record a pending JobPayment.

    Raises:
        PaymentError: 404 job not owned, 400 already paid / tier mismatch, 503 not configured
    """
    client = get_stripe()

    job = db.query(Job).filter(Job.id == job_id, Job.employer_id == employer_id).first()
    if not job:
        raise PaymentError("Job not found", 404)

    already_paid = db.query(JobPayment).filter(
        JobPayment.job_id == job.id,
        JobPayment.status == "paid",
    ).first()
    if already_paid:
        raise PaymentError("Job already paid")

    if job.tier_id != tier_id:
        raise PaymentError("Tier mismatch")

    tier = job.tier
    currency = (tier.currency or settings.stripe.stripe_currency).lower()

    try:
        intent = client.PaymentIntent.create(
            amount=tier.price_cents,
            currency=currency,
            metadata={
                "jobId": str(job.id),
                "tierId": str(tier.id),
                "employerId": str(employer_id),
                "userId": str(user_id),
            },
            automatic_payment_methods={"enabled": True},
        )
    except stripe.StripeError as e:
        logger.error("Stripe PaymentIntent create failed for job %s: %s", job.id, e)
        raise PaymentError("Payment processor error. Please try again.", 502)

    payment = JobPayment(
        job_id=job.id,
        employer_id=employer_id,
        tier_id=tier.id,
        amount_cents=tier.price_cents,
        currency=currency,
        stripe_payment_intent_id=intent["id"],
        status="pending",
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    logger.info("Created payment %s for job %s (%s %s)", payment.id, job.id, tier.price_cents, currency)
    return {"clientSecret": intent["client_secret"], "paymentId": payment.id}


# -----------------------------------------------------------------------------
# Webhook
# -----------------------------------------------------------------------------

def verify_webhook(payload: bytes, signature: Optional[str]):
    """
    Verify the Stripe-Signature header and return the event.

    Raises:
        PaymentError: 503 no webhook secret, 400 missing or invalid signature
    """
    secret = settings.stripe.stripe_webhook_secret
    if not secret:
        raise PaymentError("Webhook not configured", 503)
    if not signature:
        raise PaymentError("No signature")
    try:
        return stripe.Webhook.construct_event(payload=payload, sig_header=signature, secret=secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise PaymentError("Invalid signature")


def _mark_paid(db: Session, intent: Any, background_tasks: Optional[BackgroundTasks]) -> bool:
    intent_id = field(intent, "id")
    payment = db.query(JobPayment).filter(JobPayment.stripe_payment_intent_id == intent_id).first()
    if not payment:
        logger.info("Ignoring payment_intent.succeeded for unknown intent %s", intent_id)
        return False

    charge_id = field(intent, "latest_charge")
    if not isinstance(charge_id, str):
        charge_id = field(charge_id, "id")

    updated = db.query(JobPayment).filter(
        JobPayment.id == payment.id,
        JobPayment.status != "paid",
    ).update(
        {"status": "paid", "paid_at": datetime.utcnow(), "stripe_charge_id": charge_id},
        synchronize_session=False,
    )
    if not updated:
        logger.info("Payment %s already paid, skipping", payment.id)
        db.rollback()
        return False

    job = db.query(Job).filter(Job.id == payment.job_id).first()
    if job and job.status in PAYABLE_JOB_STATUSES:
        job.status = "PENDING_ADMIN_REVIEW"
    db.commit()
    logger.info("Payment %s paid for job %s", payment.id, payment.job_id)

    employer = db.query(EmployerProfile).filter(EmployerProfile.id == payment.employer_id).first()
    if employer and job:
        notify_payment_received(
            db, background_tasks, employer.user_id, job.id, job.title,
            payment.amount_cents, payment.currency or settings.stripe.stripe_currency,
        )
    return True


def _mark_failed(db: Session, intent: Any) -> None:
    intent_id = field(intent, "id")
    updated = db.query(JobPayment).filter(
        JobPayment.stripe_payment_intent_id == intent_id,
        JobPayment.status != "paid",
    ).update({"status": "failed"}, synchronize_session=False)
    db.commit()
    if updated:
        logger.info("Payment for intent %s marked failed", intent_id)


def handle_webhook_event(
    db: Session,
    event: Any,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    event_type = field(event, "type") or ""
    obj = field(event, "data", "object")

    if event_type == "payment_intent.succeeded":
        _mark_paid(db, obj, background_tasks)
    elif event_type == "payment_intent.payment_failed":
        _mark_failed(db, obj)
    elif event_type in SUBSCRIPTION_EVENTS:
        handle_subscription_event(db, event_type, obj)
    else:
        logger.debug("Ignoring webhook event %s", event_type)
