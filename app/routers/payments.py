"""
ExecBoard - Job posting payments and the Stripe webhook receiver.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session
import logging

from ..auth.dependencies import require_employer_profile
from ..auth.schemas import SessionUser
from ..database import get_db
from ..errors import AppError
from ..rate_limit import RateLimit
from ..responses import error_response, success_response
from ..schemas import PaymentIntentCreate
from ..services.payments import create_payment_intent, handle_webhook_event, verify_webhook
from ..services.stripe_client import PaymentError, field

logger = logging.getLogger("execboard.payments")
router = APIRouter()


def payment_error(e: PaymentError) -> AppError:
    """PaymentError carries its own status; render it through the error envelope."""
    error = AppError(e.message)
    error.status_code = e.status_code
    return error


@router.post("/payments/create-intent", dependencies=[Depends(RateLimit("rl:payments", 20, 60))])
def create_intent(
    body: PaymentIntentCreate,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_employer_profile),
):
    """Start paying for a job's tier; returns the client secret for Stripe.js."""
    try:
        result = create_payment_intent(
            db,
            user_id=session.id,
            employer_id=session.employer_profile_id,
            job_id=body.job_id,
            tier_id=body.tier_id,
        )
    except PaymentError as e:
        raise payment_error(e)
    return success_response(result)


@router.post("/payments/webhook")
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Receive Stripe events. The signature is checked against the raw body
    before any record is touched.
    """
    payload = await request.body()
    try:
        event = verify_webhook(payload, request.headers.get("stripe-signature"))
    except PaymentError as e:
        raise payment_error(e)

    try:
        handle_webhook_event(db, event, background_tasks)
    except Exception:
        db.rollback()
        logger.exception("Webhook processing failed for event %s", field(event, "id"))
        return error_response("Webhook processing failed", 500)

    return success_response({"received": True})
