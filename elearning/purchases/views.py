"""
Course Purchase Views
=====================

REST API endpoints for buying courses with Stripe Checkout.

Endpoints
---------

1. CreateCheckoutSessionView
   - URL: /api/elearning/purchases/checkout-session/
   - Method: POST
   - Auth: Required (buyer)
   - Body: {"course_id": 42, "success_url": "https://..." (optional)}
   - Purpose:
       Creates a Stripe Checkout Session and a pending purchase; returns the
       hosted checkout URL.

2. StripeWebhookView
   - URL: /api/elearning/purchases/webhook/
   - Method: POST
   - Auth: None (Stripe-Signature header is verified instead)
   - Purpose:
       Receives checkout events and completes / fails the matching purchase.
       Answers non-2xx on any failure so Stripe redelivers the event.

3. CourseDetailWithPurchaseStatusView
   - URL: /api/elearning/purchases/courses/<course_id>/
   - Method: GET
   - Auth: Required (buyer)
   - Purpose:
       Returns the course with lectures and whether the buyer purchased it.

4. PurchasedCourseListView
   - URL: /api/elearning/purchases/
   - Method: GET
   - Auth: Admin
   - Purpose:
       Lists all completed purchases with their course.

5. UpdatePurchaseStatusView
   - URL: /api/elearning/purchases/status/
   - Method: POST
   - Auth: Admin
   - Body: {"course_id": 42, "user_id": 7}
   - Purpose:
       Manually completes a buyer's purchase and grants access.

Responses
---------
Errors are rendered as {"success": false, "message": "..."} with the status
code of the raised purchase error. Unexpected exceptions are logged and
answered with a generic 500.

Author: DSP Development Team
Version: 1.0.0
"""

import logging

from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.stripe_integration.exceptions import StripeIntegrationError

from ..courses.serializers import CourseSerializer
from .serializers import CoursePurchaseSerializer
from .services import PurchaseService

logger = logging.getLogger(__name__)


def error_response(exc: StripeIntegrationError) -> Response:
    body = {"success": False, "message": exc.message}
    if exc.details:
        body["details"] = exc.details
    return Response(body, status=exc.status_code)


def server_error_response() -> Response:
    return Response(
        {"success": False, "message": "Internal Server Error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class PurchaseAPIView(APIView):
    """
    Base view: builds the purchase service and maps purchase errors to JSON.
    """

    def get_service(self) -> PurchaseService:
        return PurchaseService()

    def handle_exception(self, exc):
        if isinstance(exc, StripeIntegrationError):
            logger.info("%s on %s: %s", exc.__class__.__name__, self.request.path, exc.message)
            return error_response(exc)
        try:
            # DRF renders its own API errors (auth, permissions) and re-raises the rest
            return super().handle_exception(exc)
        except Exception:
            logger.exception("Unhandled error on %s", self.request.path)
            return server_error_response()


class CreateCheckoutSessionView(PurchaseAPIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        url = self.get_service().initiate_checkout(
            buyer=request.user,
            course_id=request.data.get("course_id"),
            success_url=request.data.get("success_url"),
        )
        return Response({"success": True, "url": url}, status=status.HTTP_200_OK)


class StripeWebhookView(PurchaseAPIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request):
        service = self.get_service()
        # Raw body: the signature is computed over the exact bytes Stripe sent
        event = service.gateway.construct_event(
            request.body, request.META.get("HTTP_STRIPE_SIGNATURE")
        )
        service.handle_event(event)
        return Response({"received": True}, status=status.HTTP_200_OK)


class CourseDetailWithPurchaseStatusView(PurchaseAPIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, course_id: int):
        course, purchased = self.get_service().get_entitlement_status(course_id, request.user)
        return Response(
            {"course": CourseSerializer(course).data, "purchased": purchased},
            status=status.HTTP_200_OK,
        )


class PurchasedCourseListView(PurchaseAPIView):
    permission_classes = [permissions.IsAdminUser]

    def get(self, request):
        purchases = self.get_service().list_completed_purchases()
        return Response(
            {"purchasedCourses": CoursePurchaseSerializer(purchases, many=True).data},
            status=status.HTTP_200_OK,
        )


class UpdatePurchaseStatusView(PurchaseAPIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request):
        self.get_service().direct_status_override(
            course_id=request.data.get("course_id"),
            buyer_id=request.data.get("user_id"),
        )
        return Response(
            {"success": True, "message": "Purchase status updated successfully."},
            status=status.HTTP_200_OK,
        )
