"""
Stripe Integration AppConfig
============================

Django application configuration for the local `core.stripe_integration`
package. The app has no models; it is registered so its URLs and views live
under one label next to the other core apps.

Author: DSP Development Team
Date: 2025-09-03
"""

from django.apps import AppConfig


class StripeIntegrationConfig(AppConfig):
    """
    App configuration for the `core.stripe_integration` package.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "core.stripe_integration"
    verbose_name = "Stripe Integration"
