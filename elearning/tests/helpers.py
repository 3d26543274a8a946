"""
Shared fixtures for the E-Learning test-suite: test data, a fake Stripe
gateway and signed webhook payloads.
"""

import hashlib
import hmac
import json
import time
from decimal import Decimal

from django.contrib.auth.models import User

from core.stripe_integration.exceptions import PaymentSessionCreationFailed
from core.stripe_integration.gateway import CheckoutSession
from elearning.courses.models import Course, Lecture
from elearning.purchases.models import CoursePurchase


class FakeGateway:
    """In-memory stand-in for StripeGateway; records every session request."""

    currency = "eur"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sessions = []

    def create_checkout_session(self, **kwargs):
        if self.fail:
            raise PaymentSessionCreationFailed()
        self.sessions.append(kwargs)
        session_id = f"cs_test_{len(self.sessions)}"
        return CheckoutSession(session_id=session_id, url=f"https://checkout.stripe.com/c/pay/{session_id}")

    def construct_event(self, payload, signature_header):
        return json.loads(payload)


def create_buyer(username="buyer", **kwargs) -> User:
    return User.objects.create_user(username=username, password="Musterpassword", **kwargs)


def create_course(title="Python Grundlagen", price="499", lectures=3) -> Course:
    course = Course.objects.create(
        title=title,
        price=Decimal(price),
        thumbnail="https://cdn.example.com/python.png",
    )
    for order in range(lectures):
        Lecture.objects.create(
            course=course,
            title=f"Lektion {order + 1}",
            order=order,
            # first lecture is the free preview
            is_preview_free=(order == 0),
        )
    return course


def create_purchase(course, buyer, status=CoursePurchase.Status.PENDING, reference="cs_test_existing"):
    return CoursePurchase.objects.create(
        course=course,
        buyer=buyer,
        amount=course.price,
        status=status,
        payment_reference=reference,
    )


def checkout_event(
    session_id,
    event_type="checkout.session.completed",
    amount_total=None,
    event_id="evt_test_1",
    payment_status="paid",
):
    session = {"id": session_id, "object": "checkout.session", "payment_status": payment_status}
    if amount_total is not None:
        session["amount_total"] = amount_total
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": session}}


def sign_payload(payload: str, secret: str, timestamp=None) -> str:
    """Build a `Stripe-Signature` header the same way Stripe signs webhooks."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"
