"""
E-Learning Course Purchase Models

Models:
- CoursePurchase: One attempt by one buyer to buy one course via Stripe Checkout

Lifecycle:
    pending ──(checkout.session.completed / manual override)──► completed
       │
       └──(checkout.session.expired / async_payment_failed / stale cleanup)──► failed

    `completed` and `failed` are terminal. Rows are never deleted by the
    purchase flow.

Author: DSP Development Team
Version: 1.0.0
"""

from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from ..courses.models import Course


class CoursePurchase(models.Model):
    """
    Purchase record linking a buyer, a course and a Stripe checkout session.

    Attributes:
        course: Purchased course
        buyer: Paying user
        amount: Amount in major currency units (settled total once completed)
        currency: Currency the session was created in
        status: pending / completed / failed
        payment_reference: Stripe checkout session id, the idempotency key
            used to match webhook events to this row
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        COMPLETED = "completed", _("Completed")
        FAILED = "failed", _("Failed")

    # Allowed transitions; terminal states map to an empty set
    TRANSITIONS = {
        "pending": {"completed", "failed"},
        "completed": set(),
        "failed": set(),
    }

    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        related_name="purchases",
        verbose_name=_("Course"),
    )

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="course_purchases",
        verbose_name=_("Buyer"),
    )

    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        verbose_name=_("Amount"),
    )

    currency = models.CharField(
        max_length=3,
        default="eur",
        verbose_name=_("Currency"),
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
        verbose_name=_("Status"),
    )

    payment_reference = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        verbose_name=_("Payment Reference"),
        help_text=_("Stripe checkout session id (cs_...)"),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Course Purchase")
        verbose_name_plural = _("Course Purchases")
        ordering = ["-created_at"]
        db_table = "elearning_course_purchase"
        indexes = [
            models.Index(fields=["course", "buyer", "status"], name="purchase_pair_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Purchase #{self.pk} {self.course_id}/{self.buyer_id} ({self.status})"

    @property
    def is_completed(self) -> bool:
        return self.status == self.Status.COMPLETED

    def can_transition_to(self, status: str) -> bool:
        return str(status) in self.TRANSITIONS.get(str(self.status), set())

    def mark_completed(self, settled_amount: Optional[Decimal] = None) -> None:
        """
        Move a pending purchase to completed (in memory, caller saves).

        Args:
            settled_amount: Amount actually charged by Stripe; replaces the
                requested amount when given
        """
        if settled_amount is not None:
            self.amount = settled_amount
        self.status = self.Status.COMPLETED

    @classmethod
    def has_completed(cls, course_id, buyer_id) -> bool:
        return cls.objects.filter(
            course_id=course_id, buyer_id=buyer_id, status=cls.Status.COMPLETED
        ).exists()
