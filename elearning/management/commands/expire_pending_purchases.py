"""
Expire Pending Purchases Management Command - DSP (Digital Solutions Platform)

Dieses Management Command markiert ausstehende Kurskäufe als fehlgeschlagen,
deren Stripe Checkout Session nie abgeschlossen wurde.

Hintergrund:
- Jeder gestartete Checkout legt einen Kauf im Status "pending" an.
- Abgebrochene Checkouts erzeugen normalerweise ein
  `checkout.session.expired` Event; geht dieses verloren, bleibt der
  Datensatz für immer "pending".
- Stripe Checkout Sessions laufen spätestens nach 24 Stunden ab, danach kann
  kein Abschluss-Event mehr kommen.

Features:
- Konfigurierbares Alter über PENDING_PURCHASE_TTL_HOURS oder --hours
- --dry-run zeigt nur an, was geändert würde
- Abgeschlossene Käufe werden nie angefasst

Author: DSP Development Team
Created: 10.07.2025
Version: 1.0.0
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError
from django.utils import timezone

from elearning.purchases.models import CoursePurchase

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """
    Django Management Command für das Ablaufen ausstehender Kurskäufe.

    Setzt Käufe im Status "pending", die älter als die konfigurierte Zeit sind,
    auf "failed". Es gibt keinen automatischen Aufruf; das Command wird von
    einem Operator oder per Cron ausgeführt.
    """

    help = "Markiert ausstehende Kurskäufe, deren Checkout abgelaufen ist, als fehlgeschlagen."

    def add_arguments(self, parser):
        parser.add_argument(
            "--hours",
            type=int,
            default=None,
            help="Mindestalter in Stunden (Standard: PENDING_PURCHASE_TTL_HOURS)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Nur anzeigen, nichts ändern",
        )

    def handle(self, *args, **options):
        hours = options["hours"]
        if hours is None:
            hours = getattr(settings, "PENDING_PURCHASE_TTL_HOURS", 24)
        if hours < 1:
            raise CommandError("--hours muss mindestens 1 sein.")

        cutoff = timezone.now() - timedelta(hours=hours)
        stale = CoursePurchase.objects.filter(
            status=CoursePurchase.Status.PENDING,
            created_at__lt=cutoff,
        )

        count = stale.count()
        if count == 0:
            self.stdout.write(self.style.SUCCESS("Keine abgelaufenen Käufe gefunden."))
            return

        self.stdout.write(f"{count} ausstehende Käufe älter als {hours} Stunden:")
        for purchase in stale.select_related("course", "buyer"):
            self.stdout.write(
                f"  - #{purchase.pk} {purchase.course.title} / {purchase.buyer.username} "
                f"(session={purchase.payment_reference}, erstellt {purchase.created_at:%Y-%m-%d %H:%M})"
            )

        if options["dry_run"]:
            self.stdout.write("Dry run: keine Änderungen gespeichert.")
            return

        try:
            updated = stale.update(status=CoursePurchase.Status.FAILED, updated_at=timezone.now())
        except DatabaseError as e:
            logger.error(f"Fehler beim Ausführen von expire_pending_purchases: {e}", exc_info=True)
            raise CommandError(f"Ein Fehler ist aufgetreten: {e}")

        logger.info("Expired %s pending purchases older than %s hours.", updated, hours)
        self.stdout.write(self.style.SUCCESS(f"{updated} Käufe als fehlgeschlagen markiert."))
