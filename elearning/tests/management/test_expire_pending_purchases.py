from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from django.utils import timezone

from elearning.purchases.models import CoursePurchase

from ..helpers import create_buyer, create_course, create_purchase


@override_settings(PENDING_PURCHASE_TTL_HOURS=24)
class ExpirePendingPurchasesCommandTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.buyer = create_buyer()
        cls.course = create_course()

    def setUp(self):
        self.stale = create_purchase(self.course, self.buyer, reference="cs_stale")
        self.fresh = create_purchase(self.course, self.buyer, reference="cs_fresh")
        self.done = create_purchase(
            self.course, self.buyer, status=CoursePurchase.Status.COMPLETED, reference="cs_done"
        )
        two_days_ago = timezone.now() - timedelta(days=2)
        CoursePurchase.objects.filter(pk__in=[self.stale.pk, self.done.pk]).update(created_at=two_days_ago)

    def run_command(self, *args):
        out = StringIO()
        call_command("expire_pending_purchases", *args, stdout=out)
        return out.getvalue()

    def test_expires_only_stale_pending_purchases(self):
        output = self.run_command()

        self.assertIn("1 Käufe als fehlgeschlagen markiert.", output)
        self.stale.refresh_from_db()
        self.fresh.refresh_from_db()
        self.done.refresh_from_db()
        self.assertEqual(self.stale.status, CoursePurchase.Status.FAILED)
        self.assertEqual(self.fresh.status, CoursePurchase.Status.PENDING)
        self.assertEqual(self.done.status, CoursePurchase.Status.COMPLETED)

    def test_dry_run_changes_nothing(self):
        output = self.run_command("--dry-run")

        self.assertIn("cs_stale", output)
        self.assertIn("Dry run: keine Änderungen gespeichert.", output)
        self.stale.refresh_from_db()
        self.assertEqual(self.stale.status, CoursePurchase.Status.PENDING)

    def test_hours_option_overrides_setting(self):
        output = self.run_command("--hours", "72")

        self.assertIn("Keine abgelaufenen Käufe gefunden.", output)
        self.stale.refresh_from_db()
        self.assertEqual(self.stale.status, CoursePurchase.Status.PENDING)

    def test_rejects_invalid_hours(self):
        with self.assertRaises(CommandError):
            self.run_command("--hours", "0")
