"""
ExecBoard - Stripe access shared by payments and subscriptions.
"""
import logging
from datetime import datetime
from typing import Any, Optional

import stripe

from ..config import settings

logger = logging.getLogger("execboard.payments")


class PaymentError(Exception):
    """Payment or subscription failure with the HTTP status the router should use."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def is_configured() -> bool:
    return bool(settings.stripe.stripe_secret_key)


def get_stripe():
    """Return the stripe module with the API key applied, or raise 503."""
    if not is_configured():
        raise PaymentError("Payments not configured", 503)
    stripe.api_key = settings.stripe.stripe_secret_key
    return stripe


def field(obj: Any, *path) -> Any:
    """
    Read a nested key from a Stripe object or plain dict; None when any step is missing.

        field(subscription, "latest_invoice", "payment_intent", "client_secret")
    """
    current = obj
    for key in path:
        if current is None:
            return None
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError):
            return None
    return current


def from_timestamp(value: Optional[int]) -> Optional[datetime]:
    return datetime.utcfromtimestamp(value) if value else None
