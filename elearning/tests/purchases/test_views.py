"""
API tests for the course purchase endpoints.

Stripe is never called: Checkout Session creation is patched on the SDK and
webhooks are signed locally with the configured test secret, so the real
signature verification runs.
"""

import json
from decimal import Decimal
from types import SimpleNamespace
from unittest import mock

import stripe
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from elearning.purchases.models import CoursePurchase
from elearning.purchases.services import PurchaseService

from ..helpers import checkout_event, create_buyer, create_course, create_purchase, sign_payload

WEBHOOK_SECRET = "whsec_test_secret"


@override_settings(STRIPE_SECRET_KEY="sk_test_123", DEFAULT_CURRENCY="eur", FRONTEND_URL="https://app.example.com")
class CheckoutSessionViewTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.buyer = create_buyer()
        cls.course = create_course(price="499")

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.buyer)
        self.url = reverse("elearning:purchases:checkout-session")

    @mock.patch("stripe.checkout.Session.create")
    def test_checkout_returns_stripe_url(self, create_session):
        create_session.return_value = SimpleNamespace(
            id="cs_test_view", url="https://checkout.stripe.com/c/pay/cs_test_view"
        )

        response = self.client.post(self.url, {"course_id": self.course.pk}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {"success": True, "url": "https://checkout.stripe.com/c/pay/cs_test_view"})

        purchase = CoursePurchase.objects.get()
        self.assertEqual(purchase.payment_reference, "cs_test_view")
        self.assertEqual(purchase.status, CoursePurchase.Status.PENDING)

        kwargs = create_session.call_args.kwargs
        self.assertEqual(kwargs["api_key"], "sk_test_123")
        self.assertEqual(kwargs["mode"], "payment")
        price_data = kwargs["line_items"][0]["price_data"]
        self.assertEqual(price_data["unit_amount"], 49900)
        self.assertEqual(price_data["currency"], "eur")
        self.assertEqual(price_data["product_data"]["name"], "Python Grundlagen")
        self.assertEqual(kwargs["metadata"], {"course_id": str(self.course.pk), "user_id": str(self.buyer.pk)})

    @mock.patch("stripe.checkout.Session.create")
    def test_stripe_error_is_reported_and_nothing_stored(self, create_session):
        create_session.side_effect = stripe.InvalidRequestError("Invalid currency", "currency")

        response = self.client.post(self.url, {"course_id": self.course.pk}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.json()["success"])
        self.assertEqual(response.json()["message"], "Error while creating session")
        self.assertFalse(CoursePurchase.objects.exists())

    @mock.patch("stripe.checkout.Session.create")
    def test_session_without_url_is_rejected(self, create_session):
        create_session.return_value = SimpleNamespace(id="cs_test_nourl", url=None)

        response = self.client.post(self.url, {"course_id": self.course.pk}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(CoursePurchase.objects.exists())

    def test_unknown_course(self):
        response = self.client.post(self.url, {"course_id": 999999}, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json(), {"success": False, "message": "Course not found."})
        self.assertFalse(CoursePurchase.objects.exists())

    def test_missing_course_id(self):
        response = self.client.post(self.url, {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_already_purchased(self):
        create_purchase(self.course, self.buyer, status=CoursePurchase.Status.COMPLETED)

        response = self.client.post(self.url, {"course_id": self.course.pk}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_requires_authentication(self):
        client = APIClient()
        response = client.post(self.url, {"course_id": self.course.pk}, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @mock.patch.object(PurchaseService, "initiate_checkout", side_effect=RuntimeError("unexpected"))
    def test_unexpected_error_is_generic_500(self, _initiate):
        response = self.client.post(self.url, {"course_id": self.course.pk}, format="json")

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.json(), {"success": False, "message": "Internal Server Error"})


@override_settings(STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET)
class StripeWebhookViewTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.buyer = create_buyer()
        cls.course = create_course(price="499")

    def setUp(self):
        self.url = reverse("elearning:purchases:stripe-webhook")
        self.purchase = create_purchase(self.course, self.buyer, reference="cs_test_hook")

    def post_event(self, event, secret=WEBHOOK_SECRET, signature=None):
        payload = json.dumps(event)
        headers = {}
        if signature is None:
            signature = sign_payload(payload, secret)
        if signature:
            headers["HTTP_STRIPE_SIGNATURE"] = signature
        return self.client.post(self.url, data=payload, content_type="application/json", **headers)

    def test_signed_completion_event_grants_access(self):
        response = self.post_event(checkout_event("cs_test_hook", amount_total=49900))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.status, CoursePurchase.Status.COMPLETED)
        self.assertEqual(self.purchase.amount, Decimal("499.00"))
        self.assertTrue(self.course.is_enrolled(self.buyer))
        self.assertFalse(self.course.lectures.filter(is_preview_free=False).exists())

    def test_replayed_delivery_is_acknowledged_without_duplicates(self):
        event = checkout_event("cs_test_hook", amount_total=49900)

        first = self.post_event(event)
        second = self.post_event(event)

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(self.course.enrolled_students.count(), 1)
        self.assertEqual(self.buyer.enrolled_courses.count(), 1)

    def test_invalid_signature_is_rejected_before_any_change(self):
        response = self.post_event(
            checkout_event("cs_test_hook", amount_total=49900), secret="whsec_attacker"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.status, CoursePurchase.Status.PENDING)
        self.assertFalse(self.course.is_enrolled(self.buyer))

    def test_missing_signature_header_is_rejected(self):
        response = self.post_event(checkout_event("cs_test_hook"), signature="")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.status, CoursePurchase.Status.PENDING)

    @override_settings(STRIPE_WEBHOOK_SECRET="")
    def test_rejects_everything_without_configured_secret(self):
        response = self.post_event(checkout_event("cs_test_hook"), secret="")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.status, CoursePurchase.Status.PENDING)

    def test_unknown_session_is_not_found(self):
        response = self.post_event(checkout_event("cs_test_unknown", amount_total=49900))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()["message"], "Purchase not found")

    def test_expired_session_marks_purchase_failed(self):
        response = self.post_event(checkout_event("cs_test_hook", event_type="checkout.session.expired"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.status, CoursePurchase.Status.FAILED)

    def test_unrelated_event_is_acknowledged(self):
        response = self.post_event(checkout_event("cs_test_hook", event_type="customer.created"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.status, CoursePurchase.Status.PENDING)

    @mock.patch("elearning.courses.models.Course.enroll")
    def test_database_failure_asks_stripe_to_retry(self, enroll):
        from django.db import DatabaseError

        enroll.side_effect = DatabaseError("connection lost")

        response = self.post_event(checkout_event("cs_test_hook", amount_total=49900))

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.status, CoursePurchase.Status.PENDING)

    @mock.patch.object(PurchaseService, "handle_event", side_effect=RuntimeError("unexpected"))
    def test_unexpected_error_is_generic_500(self, _handle):
        response = self.post_event(checkout_event("cs_test_hook"))

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.json(), {"success": False, "message": "Internal Server Error"})


class CourseDetailWithPurchaseStatusViewTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.buyer = create_buyer()
        cls.course = create_course()

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.buyer)
        self.url = reverse("elearning:purchases:course-detail-with-status", args=[self.course.pk])

    def test_not_purchased(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertFalse(body["purchased"])
        self.assertEqual(body["course"]["title"], "Python Grundlagen")
        self.assertEqual(len(body["course"]["lectures"]), 3)

    def test_purchased(self):
        create_purchase(self.course, self.buyer, status=CoursePurchase.Status.COMPLETED)

        response = self.client.get(self.url)

        self.assertTrue(response.json()["purchased"])

    def test_unknown_course(self):
        url = reverse("elearning:purchases:course-detail-with-status", args=[999999])
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_access_token_cookie_authenticates(self):
        client = APIClient()
        client.cookies["access_token"] = str(AccessToken.for_user(self.buyer))

        response = client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_bearer_header_authenticates(self):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(self.buyer)}")

        response = client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)


class AdminPurchaseViewTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = create_buyer("admin", is_staff=True)
        cls.buyer = create_buyer()
        cls.course = create_course()

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.admin)

    def test_list_completed_purchases(self):
        create_purchase(self.course, self.buyer, status=CoursePurchase.Status.COMPLETED, reference="cs_done")
        create_purchase(self.course, self.admin, reference="cs_open")

        response = self.client.get(reverse("elearning:purchases:purchased-course-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        purchases = response.json()["purchasedCourses"]
        self.assertEqual(len(purchases), 1)
        self.assertEqual(purchases[0]["payment_reference"], "cs_done")
        self.assertEqual(purchases[0]["course"]["title"], "Python Grundlagen")

    def test_list_requires_admin(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.get(reverse("elearning:purchases:purchased-course-list"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_manual_status_update(self):
        create_purchase(self.course, self.buyer)

        response = self.client.post(
            reverse("elearning:purchases:update-purchase-status"),
            {"course_id": self.course.pk, "user_id": self.buyer.pk},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["message"], "Purchase status updated successfully.")
        self.assertTrue(self.course.is_enrolled(self.buyer))

    def test_manual_status_update_without_purchase(self):
        response = self.client.post(
            reverse("elearning:purchases:update-purchase-status"),
            {"course_id": self.course.pk, "user_id": self.buyer.pk},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(self.course.is_enrolled(self.buyer))

    def test_manual_status_update_missing_parameters(self):
        response = self.client.post(
            reverse("elearning:purchases:update-purchase-status"),
            {"course_id": self.course.pk},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["message"], "Course ID and User ID are required.")

    def test_manual_status_update_requires_admin(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.post(
            reverse("elearning:purchases:update-purchase-status"),
            {"course_id": self.course.pk, "user_id": self.buyer.pk},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
