import json
import time
from decimal import Decimal
from types import SimpleNamespace
from unittest import mock

import stripe
from django.core.exceptions import ImproperlyConfigured
from django.test import TestCase, override_settings
from django.urls import reverse

from elearning.tests.helpers import checkout_event, sign_payload

from .exceptions import PaymentSessionCreationFailed, VerificationError
from .gateway import StripeGateway, from_minor_units, to_minor_units

SECRET = "whsec_gateway_test"


class MinorUnitTests(TestCase):
    def test_to_minor_units(self):
        self.assertEqual(to_minor_units(Decimal("499")), 49900)
        self.assertEqual(to_minor_units(Decimal("4.99")), 499)
        self.assertEqual(to_minor_units(Decimal("0.005")), 1)

    def test_from_minor_units(self):
        self.assertEqual(from_minor_units(49900), Decimal("499.00"))
        self.assertEqual(from_minor_units(1), Decimal("0.01"))


class CreateCheckoutSessionTests(TestCase):
    def setUp(self):
        self.gateway = StripeGateway(api_key="sk_test_gateway", webhook_secret=SECRET, currency="usd")

    def create(self):
        return self.gateway.create_checkout_session(
            amount=Decimal("19.99"),
            title="Django für Fortgeschrittene",
            success_url="https://app.example.com/purchase-success",
            cancel_url="https://app.example.com/course-detail/1",
            metadata={"course_id": "1", "user_id": "2"},
            image="https://cdn.example.com/django.png",
        )

    @mock.patch("stripe.checkout.Session.create")
    def test_builds_single_line_item_session(self, create_session):
        create_session.return_value = SimpleNamespace(id="cs_test_gw", url="https://checkout.stripe.com/c/pay/cs_test_gw")

        session = self.create()

        self.assertEqual(session.session_id, "cs_test_gw")
        self.assertEqual(session.url, "https://checkout.stripe.com/c/pay/cs_test_gw")
        kwargs = create_session.call_args.kwargs
        self.assertEqual(kwargs["api_key"], "sk_test_gateway")
        self.assertEqual(kwargs["mode"], "payment")
        self.assertEqual(kwargs["payment_method_types"], ["card"])
        self.assertEqual(
            kwargs["line_items"],
            [
                {
                    "price_data": {
                        "currency": "usd",
                        "product_data": {
                            "name": "Django für Fortgeschrittene",
                            "images": ["https://cdn.example.com/django.png"],
                        },
                        "unit_amount": 1999,
                    },
                    "quantity": 1,
                }
            ],
        )
        self.assertEqual(kwargs["metadata"], {"course_id": "1", "user_id": "2"})

    @mock.patch("stripe.checkout.Session.create")
    def test_stripe_error_becomes_session_creation_failure(self, create_session):
        create_session.side_effect = stripe.APIConnectionError("Network down")

        with self.assertRaises(PaymentSessionCreationFailed) as ctx:
            self.create()

        self.assertEqual(ctx.exception.status_code, 400)
        self.assertIn("stripe_error", ctx.exception.details)

    @mock.patch("stripe.checkout.Session.create")
    def test_missing_url_is_a_failure(self, create_session):
        create_session.return_value = SimpleNamespace(id="cs_test_gw", url=None)

        with self.assertRaises(PaymentSessionCreationFailed):
            self.create()

    @override_settings(STRIPE_SECRET_KEY="sk_test_settings", STRIPE_WEBHOOK_SECRET="whsec_settings", DEFAULT_CURRENCY="eur")
    def test_from_settings(self):
        gateway = StripeGateway.from_settings()

        self.assertEqual(gateway.api_key, "sk_test_settings")
        self.assertEqual(gateway.webhook_secret, "whsec_settings")
        self.assertEqual(gateway.currency, "eur")


class CurrencyTests(TestCase):
    def test_two_decimal_currency_is_normalised(self):
        gateway = StripeGateway(api_key="sk_test", webhook_secret=SECRET, currency="EUR")
        self.assertEqual(gateway.currency, "eur")

    def test_zero_decimal_currency_is_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            StripeGateway(api_key="sk_test", webhook_secret=SECRET, currency="jpy")

    def test_three_decimal_currency_is_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            StripeGateway(api_key="sk_test", webhook_secret=SECRET, currency="kwd")

    @override_settings(DEFAULT_CURRENCY="krw")
    def test_from_settings_rejects_zero_decimal_currency(self):
        with self.assertRaises(ImproperlyConfigured):
            StripeGateway.from_settings()


class ConstructEventTests(TestCase):
    def setUp(self):
        self.gateway = StripeGateway(api_key="sk_test_gateway", webhook_secret=SECRET)
        self.payload = json.dumps(checkout_event("cs_test_sig", amount_total=1999))

    def test_valid_signature_returns_event(self):
        event = self.gateway.construct_event(self.payload.encode("utf-8"), sign_payload(self.payload, SECRET))

        self.assertEqual(event["type"], "checkout.session.completed")
        self.assertEqual(event["data"]["object"]["id"], "cs_test_sig")

    def test_wrong_secret_is_rejected(self):
        with self.assertRaises(VerificationError):
            self.gateway.construct_event(self.payload, sign_payload(self.payload, "whsec_other"))

    def test_tampered_payload_is_rejected(self):
        header = sign_payload(self.payload, SECRET)
        tampered = self.payload.replace("1999", "1")

        with self.assertRaises(VerificationError):
            self.gateway.construct_event(tampered, header)

    def test_stale_timestamp_is_rejected(self):
        old = int(time.time()) - stripe.Webhook.DEFAULT_TOLERANCE - 60

        with self.assertRaises(VerificationError):
            self.gateway.construct_event(self.payload, sign_payload(self.payload, SECRET, timestamp=old))

    def test_missing_header_is_rejected(self):
        with self.assertRaises(VerificationError):
            self.gateway.construct_event(self.payload, None)

    def test_fails_closed_without_secret(self):
        gateway = StripeGateway(api_key="sk_test_gateway", webhook_secret="")

        with self.assertRaises(VerificationError):
            gateway.construct_event(self.payload, sign_payload(self.payload, ""))

    def test_signed_non_json_payload_is_rejected(self):
        payload = "not json"

        with self.assertRaises(VerificationError):
            self.gateway.construct_event(payload, sign_payload(payload, SECRET))

    def test_signed_payload_without_type_is_rejected(self):
        payload = json.dumps({"id": "evt_1"})

        with self.assertRaises(VerificationError):
            self.gateway.construct_event(payload, sign_payload(payload, SECRET))


@override_settings(STRIPE_LIVE_MODE=False, STRIPE_TEST_PUBLISHABLE_KEY="pk_test_123", DEFAULT_CURRENCY="eur")
class StripeConfigViewTests(TestCase):
    def test_returns_publishable_key(self):
        response = self.client.get(reverse("stripe_integration:stripe-config"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"publishableKey": "pk_test_123", "currency": "eur"})

    @override_settings(STRIPE_LIVE_MODE=True, STRIPE_LIVE_PUBLISHABLE_KEY="pk_live_456")
    def test_live_mode_uses_live_key(self):
        response = self.client.get(reverse("stripe_integration:stripe-config"))

        self.assertEqual(response.json()["publishableKey"], "pk_live_456")
