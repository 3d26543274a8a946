"""
Stripe Gateway
==============

Thin, explicitly constructed wrapper around the official `stripe` SDK.

The gateway holds its own API key and webhook secret instead of setting the
module-global `stripe.api_key`, so every caller gets the configuration it was
built with and tests can swap in a fake with the same two methods.

Operations
----------
- create_checkout_session(): one-off "payment" mode Checkout Session for a
  single course. Returns the session id and the hosted checkout URL.
- construct_event(): verifies the `Stripe-Signature` header of a webhook
  request and returns the decoded event as a plain dict. Fails closed when no
  signing secret is configured.

Author: DSP Development Team
Date: 2025-09-03
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

import stripe
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from .exceptions import PaymentSessionCreationFailed, VerificationError

logger = logging.getLogger(__name__)

# Stripe currencies whose smallest unit is not 1/100 of the major unit
ZERO_DECIMAL_CURRENCIES = {
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
    "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
}
THREE_DECIMAL_CURRENCIES = {"bhd", "jod", "kwd", "omr", "tnd"}


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (e.g. 4.99) into Stripe's smallest unit (499)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / 100).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


class StripeGateway:
    """
    Payment provider collaborator backed by Stripe Checkout.

    Args:
        api_key: Stripe secret key (sk_test_... / sk_live_...)
        webhook_secret: Signing secret of the webhook endpoint (whsec_...)
        currency: ISO currency code used for all sessions; must be a
            two-decimal currency

    Raises:
        ImproperlyConfigured: Zero- or three-decimal currency configured
    """

    def __init__(self, api_key: str, webhook_secret: str, currency: str = "eur") -> None:
        currency = (currency or "").lower()
        if not currency or currency in ZERO_DECIMAL_CURRENCIES or currency in THREE_DECIMAL_CURRENCIES:
            raise ImproperlyConfigured(
                f"Currency '{currency}' is not supported: amounts are sent to Stripe in 1/100 units."
            )
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.currency = currency

    @classmethod
    def from_settings(cls) -> "StripeGateway":
        return cls(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            currency=settings.DEFAULT_CURRENCY,
        )

    def create_checkout_session(
        self,
        *,
        amount: Decimal,
        title: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        image: Optional[str] = None,
    ) -> CheckoutSession:
        product_data: Dict[str, Any] = {"name": title}
        if image:
            product_data["images"] = [image]

        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product_data": product_data,
                            "unit_amount": to_minor_units(amount),
                        },
                        "quantity": 1,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
            )
        except stripe.StripeError as exc:
            logger.warning("Stripe refused checkout session: %s", exc)
            raise PaymentSessionCreationFailed(
                details={"stripe_error": getattr(exc, "user_message", None) or str(exc)}
            ) from exc

        session_id = getattr(session, "id", None)
        url = getattr(session, "url", None)
        if not session_id or not url:
            logger.warning("Stripe returned checkout session without id/url (id=%s)", session_id)
            raise PaymentSessionCreationFailed()

        return CheckoutSession(session_id=session_id, url=url)

    def construct_event(self, payload: bytes | str, signature_header: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook request and decode its event.

        Args:
            payload: Raw request body exactly as received
            signature_header: Value of the `Stripe-Signature` header

        Returns:
            The event as a plain dict (`{"id", "type", "data": {"object": {...}}}`)

        Raises:
            VerificationError: Secret not configured, header missing or invalid,
                or payload is not a JSON event
        """
        if not self.webhook_secret:
            raise VerificationError("Webhook signing secret is not configured.")
        if not signature_header:
            raise VerificationError("Missing Stripe-Signature header.")

        if isinstance(payload, bytes):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise VerificationError("Webhook payload is not valid UTF-8.") from exc

        try:
            stripe.WebhookSignature.verify_header(
                payload,
                signature_header,
                self.webhook_secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except stripe.SignatureVerificationError as exc:
            raise VerificationError(str(exc)) from exc

        try:
            event = json.loads(payload)
        except ValueError as exc:
            raise VerificationError("Webhook payload is not valid JSON.") from exc
        if not isinstance(event, dict) or "type" not in event:
            raise VerificationError("Webhook payload is not a Stripe event.")
        return event
