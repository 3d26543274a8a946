"""
Course Purchase Exceptions

Error taxonomy of the purchase flow. Every error carries the HTTP status the
view layer answers with; provider errors raised by the Stripe gateway share
the same base shape and are re-exported here so callers import one module.

Author: DSP Development Team
Version: 1.0.0
"""

from core.stripe_integration.exceptions import (
    StripeIntegrationError,
    PaymentSessionCreationFailed,
    VerificationError,
)

__all__ = [
    "PurchaseError",
    "CourseNotFound",
    "PurchaseNotFound",
    "MissingParameters",
    "CourseAlreadyPurchased",
    "PurchaseNotCompletable",
    "PersistenceFailure",
    "PaymentSessionCreationFailed",
    "VerificationError",
]


class PurchaseError(StripeIntegrationError):
    """Base class for purchase flow errors."""

    default_message = "Purchase could not be processed."


class CourseNotFound(PurchaseError):
    status_code = 404
    default_message = "Course not found."


class PurchaseNotFound(PurchaseError):
    status_code = 404
    default_message = "Purchase not found"


class MissingParameters(PurchaseError):
    status_code = 400
    default_message = "Course ID and User ID are required."


class CourseAlreadyPurchased(PurchaseError):
    status_code = 409
    default_message = "Course already purchased."


class PurchaseNotCompletable(PurchaseError):
    """The purchase is in a terminal status other than completed."""

    status_code = 409
    default_message = "Purchase cannot be completed in its current status."


class PersistenceFailure(PurchaseError):
    """A database write failed; the caller (or Stripe) should retry."""

    status_code = 500
    default_message = "Internal Server Error"
