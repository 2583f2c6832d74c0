from __future__ import annotations

from django.core.management.base import BaseCommand

from apps.payables.services.executor import retry_pending_setup


class Command(BaseCommand):
    help = "Retry payouts held for payee setup once the payee has finished onboarding."

    def handle(self, *args, **options):
        report = retry_pending_setup()
        self.stdout.write(
            self.style.SUCCESS(
                f"batch_id={report.batch_id} completed={report.completed} failed={report.failed} "
                f"skipped={report.skipped} expired={report.expired}"
            )
        )
