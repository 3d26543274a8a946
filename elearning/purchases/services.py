"""
Course Purchase Service
=======================

Purchase reconciliation engine for one-off course purchases via Stripe
Checkout. Owns the lifecycle of a `CoursePurchase` from checkout to
completion and the side effects completion triggers.

Data Flow (Happy Path)
----------------------
1. initiate_checkout(): buyer asks to buy a course → Stripe Checkout Session is
   created → a `pending` purchase is stored with `payment_reference` set to
   the session id → the hosted checkout URL is returned to the client.
2. Stripe → webhook view verifies the signature → handle_event() →
   reconcile_completion_event():
     a. look up the purchase by `payment_reference` (row lock)
     b. already completed → nothing to do (replayed delivery)
     b2. session not paid yet (`payment_status` unpaid) → stays pending until
         `checkout.session.async_payment_succeeded` arrives
     c. take the settled `amount_total` from Stripe, mark completed
     d. unlock all lectures of the course
     e. save the purchase
     f. enroll the buyer (set semantics)

Idempotency & Safety
--------------------
- Stripe delivers webhooks at least once. Steps c–f run in one
  `transaction.atomic()` block behind a status check, so a replay after
  success is a no-op and a failure anywhere rolls back to `pending` and the
  retried delivery starts over.
- Lecture unlock is a bulk `update` and enrollment an M2M `add`; both are
  safe to repeat.
- Database errors are raised as `PersistenceFailure` so the webhook answers
  with 500 and Stripe retries.

Known accumulation
------------------
A checkout that is abandoned (or whose request times out after the session
was created) leaves a `pending` row behind. Stripe's `checkout.session.expired`
event marks it failed; `manage.py expire_pending_purchases` handles rows whose
event never arrived.

Author: DSP Development Team
Version: 1.0.0
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import QuerySet

from core.stripe_integration.gateway import StripeGateway, from_minor_units

from ..courses.models import Course
from .exceptions import (
    CourseAlreadyPurchased,
    CourseNotFound,
    MissingParameters,
    PersistenceFailure,
    PurchaseNotCompletable,
    PurchaseNotFound,
)
from .models import CoursePurchase

logger = logging.getLogger(__name__)

COMPLETION_EVENTS = {
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
}
FAILURE_EVENTS = {
    "checkout.session.expired",
    "checkout.session.async_payment_failed",
}
# `unpaid` sessions (delayed payment methods) wait for async_payment_succeeded
SETTLED_PAYMENT_STATUSES = {"paid", "no_payment_required"}


def extract_session(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return the checkout session object of a Stripe event.

    Preferred shape:
      {"type": "...", "data": {"object": {...}}}
    Falls back to a top-level `object` for hand-built payloads.
    """
    data = event.get("data")
    if isinstance(data, dict) and isinstance(data.get("object"), dict):
        return data["object"]
    if isinstance(event.get("object"), dict):
        return event["object"]
    return {}


class PurchaseService:
    """
    Checkout and reconciliation operations for course purchases.

    Args:
        gateway: Payment provider client. Defaults to a `StripeGateway`
            built from Django settings.
    """

    def __init__(self, gateway: Optional[StripeGateway] = None) -> None:
        self.gateway = gateway or StripeGateway.from_settings()

    # ---------- checkout ----------

    def initiate_checkout(self, buyer, course_id, success_url: Optional[str] = None) -> str:
        """
        Create a Stripe Checkout Session and a pending purchase for it.

        Args:
            buyer: Authenticated user buying the course
            course_id: Primary key of the course
            success_url: Optional redirect after payment; defaults to the
                frontend's purchase-success page

        Returns:
            Hosted checkout URL to redirect the buyer to

        Raises:
            MissingParameters: No course id given
            CourseNotFound: Course does not exist
            CourseAlreadyPurchased: Buyer already owns the course
            PaymentSessionCreationFailed: Stripe declined or returned no URL
            PersistenceFailure: Purchase row could not be stored
        """
        if not course_id:
            raise MissingParameters("course_id is required.")

        course = self._get_course(course_id)
        if CoursePurchase.has_completed(course.pk, buyer.pk):
            raise CourseAlreadyPurchased()

        purchase = CoursePurchase(
            course=course,
            buyer=buyer,
            amount=course.price,
            currency=self.gateway.currency,
            status=CoursePurchase.Status.PENDING,
        )

        frontend_url = settings.FRONTEND_URL.rstrip("/")
        session = self.gateway.create_checkout_session(
            amount=course.price,
            title=course.title,
            image=course.thumbnail or None,
            success_url=success_url
            or f"{frontend_url}/purchase-success?courseId={course.pk}&userId={buyer.pk}",
            cancel_url=f"{frontend_url}/course-detail/{course.pk}",
            metadata={"course_id": str(course.pk), "user_id": str(buyer.pk)},
        )

        # Only stored once Stripe issued a session, so every row has a reference
        purchase.payment_reference = session.session_id
        try:
            purchase.save()
        except DatabaseError as exc:
            logger.exception("Failed to store purchase for session %s", session.session_id)
            raise PersistenceFailure() from exc

        logger.info(
            "Checkout session %s created for user %s and course %s (purchase=%s).",
            session.session_id, buyer.pk, course.pk, purchase.pk,
        )
        return session.url

    # ---------- webhook events ----------

    def handle_event(self, event: Dict[str, Any]) -> Optional[CoursePurchase]:
        """Dispatch a verified Stripe event. Unrelated event types are ignored."""
        event_type = event.get("type")
        logger.info("[webhook] %s (event_id=%s)", event_type, event.get("id"))

        if event_type in COMPLETION_EVENTS:
            return self.reconcile_completion_event(event)
        if event_type in FAILURE_EVENTS:
            return self.mark_failed(extract_session(event).get("id"))

        logger.debug("Ignoring Stripe event type: %s", event_type)
        return None

    def reconcile_completion_event(self, event: Dict[str, Any]) -> CoursePurchase:
        """
        Complete the purchase referenced by a checkout completion event.

        Raises:
            PurchaseNotFound: No purchase carries the event's session id
            PersistenceFailure: A database write failed (nothing is kept)
        """
        session = extract_session(event)
        session_id = session.get("id")
        if not session_id:
            raise PurchaseNotFound("Event carries no checkout session id.")

        try:
            with transaction.atomic():
                purchase = self._lock_by_reference(session_id)

                if purchase.is_completed:
                    logger.info("Purchase %s already completed (session=%s). Replay ignored.", purchase.pk, session_id)
                    return purchase
                if not purchase.can_transition_to(CoursePurchase.Status.COMPLETED):
                    logger.warning(
                        "Completion event for purchase %s in status %s (session=%s). Left unchanged.",
                        purchase.pk, purchase.status, session_id,
                    )
                    return purchase
                if session.get("payment_status") not in SETTLED_PAYMENT_STATUSES:
                    logger.info(
                        "Session %s not paid yet (payment_status=%s). Purchase %s stays pending.",
                        session_id, session.get("payment_status"), purchase.pk,
                    )
                    return purchase

                amount_total = session.get("amount_total")
                purchase.mark_completed(
                    from_minor_units(amount_total) if amount_total is not None else None
                )
                self._activate(purchase)
        except DatabaseError as exc:
            logger.exception("Failed to reconcile session %s", session_id)
            raise PersistenceFailure() from exc

        return purchase

    def mark_failed(self, session_id: Optional[str]) -> CoursePurchase:
        """Move the pending purchase of an expired/failed session to `failed`."""
        if not session_id:
            raise PurchaseNotFound("Event carries no checkout session id.")

        try:
            with transaction.atomic():
                purchase = self._lock_by_reference(session_id)
                if not purchase.can_transition_to(CoursePurchase.Status.FAILED):
                    logger.info("Purchase %s is %s, not marking failed.", purchase.pk, purchase.status)
                    return purchase
                purchase.status = CoursePurchase.Status.FAILED
                purchase.save(update_fields=["status", "updated_at"])
        except DatabaseError as exc:
            logger.exception("Failed to mark session %s as failed", session_id)
            raise PersistenceFailure() from exc

        logger.info("Purchase %s marked failed (session=%s).", purchase.pk, session_id)
        return purchase

    # ---------- manual / admin ----------

    def direct_status_override(self, course_id, buyer_id) -> CoursePurchase:
        """
        Complete a buyer's purchase without a Stripe event (support fix, comp).

        Picks the buyer's completed purchase for the course, otherwise the most
        recent pending one. Failed purchases are never revived. Lecture unlock
        and enrollment are re-applied; both are set-style.

        Raises:
            MissingParameters: Either id is missing
            PurchaseNotFound: No pending or completed purchase for the pair
            PersistenceFailure: A database write failed
        """
        if not course_id or not buyer_id:
            raise MissingParameters()

        try:
            with transaction.atomic():
                candidates = (
                    CoursePurchase.objects.select_for_update()
                    .filter(course_id=course_id, buyer_id=buyer_id)
                    .exclude(status=CoursePurchase.Status.FAILED)
                )
                purchase = (
                    candidates.filter(status=CoursePurchase.Status.COMPLETED).first()
                    or candidates.first()
                )
                if purchase is None:
                    raise PurchaseNotFound()

                if not purchase.is_completed:
                    purchase.mark_completed()
                self._activate(purchase)
        except (ValueError, TypeError) as exc:
            raise PurchaseNotFound() from exc
        except DatabaseError as exc:
            logger.exception("Failed to override purchase status for course %s / user %s", course_id, buyer_id)
            raise PersistenceFailure() from exc

        logger.info("Purchase %s completed manually (course=%s, user=%s).", purchase.pk, course_id, buyer_id)
        return purchase

    def complete_purchase(self, purchase_id) -> CoursePurchase:
        """
        Complete one specific purchase row (admin action).

        Already completed rows are left as they are.

        Raises:
            PurchaseNotFound: No purchase with this id
            PurchaseNotCompletable: The purchase has failed
            PersistenceFailure: A database write failed
        """
        try:
            with transaction.atomic():
                purchase = (
                    CoursePurchase.objects.select_for_update()
                    .select_related("course", "buyer")
                    .filter(pk=purchase_id)
                    .first()
                )
                if purchase is None:
                    raise PurchaseNotFound()
                if purchase.is_completed:
                    return purchase
                if not purchase.can_transition_to(CoursePurchase.Status.COMPLETED):
                    raise PurchaseNotCompletable()

                purchase.mark_completed()
                self._activate(purchase)
        except (ValueError, TypeError) as exc:
            raise PurchaseNotFound() from exc
        except DatabaseError as exc:
            logger.exception("Failed to complete purchase %s", purchase_id)
            raise PersistenceFailure() from exc

        logger.info("Purchase %s completed manually by id.", purchase.pk)
        return purchase

    # ---------- read-only ----------

    def get_entitlement_status(self, course_id, buyer) -> Tuple[Course, bool]:
        """Return the course and whether `buyer` holds a completed purchase for it."""
        course = self._get_course(
            course_id,
            queryset=Course.objects.select_related("creator").prefetch_related("lectures"),
        )
        return course, CoursePurchase.has_completed(course.pk, buyer.pk)

    def list_completed_purchases(self) -> QuerySet:
        return CoursePurchase.objects.filter(
            status=CoursePurchase.Status.COMPLETED
        ).select_related("course", "buyer")

    # ---------- helpers ----------

    def _get_course(self, course_id, queryset: Optional[QuerySet] = None) -> Course:
        queryset = queryset if queryset is not None else Course.objects.all()
        try:
            return queryset.get(pk=course_id)
        except (Course.DoesNotExist, ValueError, TypeError) as exc:
            raise CourseNotFound() from exc

    def _lock_by_reference(self, session_id: str) -> CoursePurchase:
        purchase = (
            CoursePurchase.objects.select_for_update()
            .filter(payment_reference=session_id)
            .first()
        )
        if purchase is None:
            logger.warning("No purchase found for checkout session %s.", session_id)
            raise PurchaseNotFound()
        return purchase

    def _activate(self, purchase: CoursePurchase) -> None:
        """Unlock lectures, persist the purchase and grant entitlement."""
        course = purchase.course
        unlocked = course.unlock_all_lectures()
        purchase.save(update_fields=["amount", "status", "updated_at"])
        course.enroll(purchase.buyer)
        logger.info(
            "Enrolled user %s into course %s (purchase=%s, lectures unlocked=%s).",
            purchase.buyer_id, course.pk, purchase.pk, unlocked,
        )
