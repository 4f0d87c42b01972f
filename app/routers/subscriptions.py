"""
ExecBoard - Employer subscriptions.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from ..auth.dependencies import require_employer_profile
from ..auth.models import User
from ..auth.schemas import SessionUser
from ..database import get_db
from ..errors import NotFound
from ..models import Subscription
from ..rate_limit import RateLimit
from ..responses import created_response, success_response
from ..schemas import SubscriptionCancel, SubscriptionCreate, SubscriptionResponse
from ..services.stripe_client import PaymentError
from ..services.subscriptions import cancel_subscription, create_subscription
from .payments import payment_error

router = APIRouter()


@router.post("/subscriptions/create", status_code=201, dependencies=[Depends(RateLimit("rl:payments", 20, 60))])
def start_subscription(
    body: SubscriptionCreate,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_employer_profile),
):
    user = db.query(User).filter(User.id == session.id).first()
    try:
        result = create_subscription(db, user, session.employer_profile_id, body.tier_id)
    except PaymentError as e:
        raise payment_error(e)
    return created_response(result, "Subscription created")


@router.get("/subscriptions", dependencies=[Depends(RateLimit("rl:api"))])
def list_subscriptions(
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_employer_profile),
):
    subscriptions = (
        db.query(Subscription)
        .filter(Subscription.employer_id == session.employer_profile_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .all()
    )
    return success_response([SubscriptionResponse.model_validate(s).model_dump() for s in subscriptions])


@router.post("/subscriptions/{subscription_id}/cancel", dependencies=[Depends(RateLimit("rl:payments", 20, 60))])
def cancel(
    subscription_id: int,
    body: Optional[SubscriptionCancel] = None,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_employer_profile),
):
    """Cancel at the end of the billing period (default) or immediately."""
    at_period_end = body.cancel_at_period_end if body else True
    subscription = db.query(Subscription).filter(
        Subscription.id == subscription_id,
        Subscription.employer_id == session.employer_profile_id,
    ).first()
    if not subscription:
        raise NotFound("Subscription not found")

    try:
        subscription = cancel_subscription(db, subscription, at_period_end)
    except PaymentError as e:
        raise payment_error(e)

    message = (
        "Subscription will cancel at the end of the billing period"
        if at_period_end
        else "Subscription cancelled"
    )
    return success_response(SubscriptionResponse.model_validate(subscription).model_dump(), message)
