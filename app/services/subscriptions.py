"""
ExecBoard - Employer subscriptions (Stripe Billing).

A subscription is created incomplete at Stripe and confirmed client-side
with the returned client secret. Status changes afterwards arrive through
the payments webhook and are applied by handle_subscription_event.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import stripe
from sqlalchemy.orm import Session

from ..auth.models import User
from ..models import Subscription, Tier
from .stripe_client import PaymentError, field, from_timestamp, get_stripe

logger = logging.getLogger("execboard.payments")

SUBSCRIPTION_EVENTS = {
    "customer.subscription.updated",
    "customer.subscription.deleted",
    "invoice.payment_failed",
    "invoice.payment_succeeded",
}


def get_active_subscription(db: Session, employer_id: int) -> Optional[Subscription]:
    return db.query(Subscription).filter(
        Subscription.employer_id == employer_id,
        Subscription.status == "ACTIVE",
    ).first()


def _get_or_create_customer(db: Session, employer_id: int, user: User) -> str:
    """Reuse the customer from an earlier subscription, otherwise create one."""
    existing = db.query(Subscription).filter(
        Subscription.employer_id == employer_id,
        Subscription.stripe_customer_id.isnot(None),
    ).first()
    if existing:
        return existing.stripe_customer_id

    customer = get_stripe().Customer.create(
        email=user.email,
        metadata={"userId": str(user.id), "employerId": str(employer_id)},
    )
    return customer["id"]


def _period_bounds(stripe_subscription: Any):
    first_item = field(stripe_subscription, "items", "data", 0)
    return (
        from_timestamp(field(first_item, "current_period_start")),
        from_timestamp(field(first_item, "current_period_end")),
    )


def create_subscription(db: Session, user: User, employer_id: int, tier_id: int) -> Dict[str, Any]:
    """
    Start a monthly subscription to ``tier_id`` for the employer.

    Returns:
        {"subscriptionId": int, "clientSecret": str | None}

    Raises:
        PaymentError: 404 unknown tier, 400 already subscribed, 503 not configured
    """
    client = get_stripe()

    tier = db.query(Tier).filter(Tier.id == tier_id).first()
    if not tier:
        raise PaymentError("Tier not found", 404)
    if not tier.stripe_price_id:
        raise PaymentError("Tier is not available as a subscription")

    if get_active_subscription(db, employer_id):
        raise PaymentError("Active subscription already exists")

    try:
        customer_id = _get_or_create_customer(db, employer_id, user)
        stripe_subscription = client.Subscription.create(
            customer=customer_id,
            items=[{"price": tier.stripe_price_id}],
            payment_behavior="default_incomplete",
            payment_settings={"save_default_payment_method": "on_subscription"},
            expand=["latest_invoice.payment_intent"],
        )
    except stripe.StripeError as e:
        logger.error("Stripe subscription create failed for employer %s: %s", employer_id, e)
        raise PaymentError("Payment processor error. Please try again.", 502)

    period_start, period_end = _period_bounds(stripe_subscription)
    subscription = Subscription(
        employer_id=employer_id,
        tier_id=tier.id,
        stripe_subscription_id=stripe_subscription["id"],
        stripe_customer_id=customer_id,
        status="ACTIVE",
        billing_interval="month",
        current_period_start=period_start,
        current_period_end=period_end,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)

    logger.info("Employer %s subscribed to tier %s (%s)", employer_id, tier.id, subscription.stripe_subscription_id)
    return {
        "subscriptionId": subscription.id,
        "clientSecret": field(stripe_subscription, "latest_invoice", "payment_intent", "client_secret"),
    }


def cancel_subscription(db: Session, subscription: Subscription, cancel_at_period_end: bool = True) -> Subscription:
    """Cancel at period end (Stripe keeps billing until then) or immediately."""
    if not subscription.stripe_subscription_id:
        raise PaymentError("Subscription not found", 404)
    if subscription.status == "CANCELLED":
        raise PaymentError("Subscription is already cancelled")

    client = get_stripe()
    try:
        if cancel_at_period_end:
            client.Subscription.modify(subscription.stripe_subscription_id, cancel_at_period_end=True)
            subscription.cancel_at_period_end = True
        else:
            client.Subscription.cancel(subscription.stripe_subscription_id)
            subscription.status = "CANCELLED"
            subscription.cancelled_at = datetime.utcnow()
            subscription.cancel_at_period_end = False
    except stripe.StripeError as e:
        logger.error("Stripe cancel failed for subscription %s: %s", subscription.id, e)
        raise PaymentError("Payment processor error. Please try again.", 502)

    db.commit()
    db.refresh(subscription)
    logger.info(
        "Subscription %s cancelled (%s)", subscription.id,
        "at period end" if cancel_at_period_end else "immediately",
    )
    return subscription


def handle_subscription_event(db: Session, event_type: str, obj: Any) -> None:
    """Apply a Stripe subscription or invoice event to the local record."""
    if event_type.startswith("invoice."):
        stripe_subscription_id = field(obj, "subscription")
    else:
        stripe_subscription_id = field(obj, "id")

    if not stripe_subscription_id:
        logger.info("Ignoring %s without a subscription id", event_type)
        return

    subscription = db.query(Subscription).filter(
        Subscription.stripe_subscription_id == stripe_subscription_id
    ).first()
    if not subscription:
        logger.warning("Subscription %s not found in database", stripe_subscription_id)
        return

    if event_type == "customer.subscription.updated":
        period_start, period_end = _period_bounds(obj)
        subscription.status = "ACTIVE" if field(obj, "status") == "active" else "CANCELLED"
        subscription.current_period_start = period_start
        subscription.current_period_end = period_end
        subscription.cancel_at_period_end = bool(field(obj, "cancel_at_period_end"))
    elif event_type == "customer.subscription.deleted":
        subscription.status = "CANCELLED"
        subscription.cancelled_at = datetime.utcnow()
    elif event_type == "invoice.payment_failed":
        subscription.status = "PAST_DUE"
    elif event_type == "invoice.payment_succeeded":
        subscription.status = "ACTIVE"
        period_start = from_timestamp(field(obj, "period_start"))
        period_end = from_timestamp(field(obj, "period_end"))
        if period_start:
            subscription.current_period_start = period_start
        if period_end:
            subscription.current_period_end = period_end
    else:
        return

    db.commit()
    logger.info("Subscription %s -> %s after %s", subscription.id, subscription.status, event_type)
