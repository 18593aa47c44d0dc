"""Stripe payment collaborator."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

import stripe

from ..config import settings
from ..core.errors import PaymentServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntentHandle:
    reference: str
    client_secret: str


@dataclass(frozen=True)
class PaymentStatus:
    succeeded: bool
    status: str
    amount: int | None = None
    metadata: dict = field(default_factory=dict)


class PaymentGateway:
    def __init__(self, api_key: str | None = None, currency: str = "usd"):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.currency = currency

    def _configure(self) -> None:
        if not self.api_key:
            raise PaymentServiceError("Payments are not configured")
        stripe.api_key = self.api_key

    def create_payment_intent(self, amount_cents: int, metadata: dict | None = None) -> PaymentIntentHandle:
        self._configure()
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=self.currency,
                metadata={k: str(v) for k, v in (metadata or {}).items()},
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            logger.error("stripe: create payment intent failed: %s", e)
            raise PaymentServiceError("Could not start the payment, please try again") from e
        return PaymentIntentHandle(reference=intent.id, client_secret=intent.client_secret)

    def get_payment_status(self, reference: str) -> PaymentStatus:
        self._configure()
        try:
            intent = stripe.PaymentIntent.retrieve(reference)
        except stripe.StripeError as e:
            logger.error("stripe: retrieve %s failed: %s", reference, e)
            raise PaymentServiceError("Could not verify the payment, please try again") from e
        return PaymentStatus(
            succeeded=intent.status == "succeeded",
            status=intent.status,
            amount=intent.amount,
            metadata=dict(intent.metadata or {}),
        )

    def cancel_payment_intent(self, reference: str) -> None:
        self._configure()
        try:
            stripe.PaymentIntent.cancel(reference)
        except stripe.StripeError as e:
            logger.error("stripe: cancel %s failed: %s", reference, e)
            raise PaymentServiceError("Could not cancel the payment") from e


def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway()
