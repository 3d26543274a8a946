"""
Stripe Integration Exceptions

Errors raised by the Stripe gateway. They carry an HTTP status code so the
view layer can turn them into JSON responses without knowing about Stripe.

Author: DSP Development Team
Version: 1.0.0
"""

from typing import Optional, Dict, Any


class StripeIntegrationError(Exception):
    """
    Base class for all errors raised by `core.stripe_integration`.

    Attributes:
        message (str): Human-readable error message
        status_code (int): HTTP status code used when rendering the error
        details (Dict[str, Any]): Additional context (e.g. Stripe's user_message)
    """

    status_code: int = 400
    default_message: str = "Stripe request failed."

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "exception_type": self.__class__.__name__,
        }


class PaymentSessionCreationFailed(StripeIntegrationError):
    """Stripe declined to create a checkout session or returned no redirect URL."""

    default_message = "Error while creating session"


class VerificationError(StripeIntegrationError):
    """
    An incoming webhook could not be authenticated.

    Raised for a missing or invalid `Stripe-Signature` header, an unparsable
    payload, or when no webhook signing secret is configured.
    """

    default_message = "Webhook signature verification failed."
