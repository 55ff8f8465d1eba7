from __future__ import annotations

from django.conf import settings
from django.core.management.base import BaseCommand

from modules.orders.tasks import reconcile_awaiting_payments


class Command(BaseCommand):
    help = "Verify awaiting-payment orders with the payment gateway."

    def add_arguments(self, parser):
        parser.add_argument(
            "--older-than",
            type=int,
            default=settings.PAYMENT_RECONCILE_AFTER_MINUTES,
            help="Only orders not updated for this many minutes.",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=settings.PAYMENT_RECONCILE_BATCH_SIZE,
        )

    def handle(self, *args, **options):
        self.stdout.write("Reconciling awaiting payments...")
        result = reconcile_awaiting_payments(
            older_than_minutes=options["older_than"],
            limit=options["limit"],
        )
        self.stdout.write(
            self.style.SUCCESS(
                "Reconciliation completed: "
                f"checked={result['checked']}, "
                f"confirmed={result['confirmed']}"
            )
        )
