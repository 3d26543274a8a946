"""
Stripe Integration Views (core.stripe_integration)
==================================================

Endpoints
---------

1. GetStripeConfigView
   - URL: /api/payments/stripe/config/
   - Method: GET
   - Auth: None
   - Purpose:
       Returns the correct publishable key (test/live) so the frontend can
       initialize Stripe.js without exposing secret keys.

Course checkout and the webhook receiver live in `elearning.purchases`; they
use `StripeGateway` from this package to talk to Stripe.

Author: DSP Development Team
Date: 2025-08-21
"""

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView


class GetStripeConfigView(APIView):
    """
    endpoint so the frontend can initialize Stripe.js
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        publishable_key = (
            settings.STRIPE_LIVE_PUBLISHABLE_KEY
            if settings.STRIPE_LIVE_MODE
            else settings.STRIPE_TEST_PUBLISHABLE_KEY
        )
        return Response(
            {"publishableKey": publishable_key, "currency": settings.DEFAULT_CURRENCY},
            status=status.HTTP_200_OK,
        )
