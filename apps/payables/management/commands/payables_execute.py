from __future__ import annotations

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.payables.exceptions import PayablesError
from apps.payables.services.executor import execute_payout


class Command(BaseCommand):
    help = "Execute a real payout batch and print its status counts."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--amount", type=int, required=True, help="Dollars to distribute.")

    def handle(self, *args, **options):
        amount = options["amount"]
        limit = int(getattr(settings, "PAYABLES_MAX_PAYOUT_DOLLARS", 10000))
        if amount < 1 or amount > limit:
            raise CommandError(f"Amount must be between 1 and {limit}.")
        try:
            result = execute_payout(amount)
        except PayablesError as exc:
            raise CommandError(exc.detail) from exc
        counts = " ".join(f"{status}={count}" for status, count in result.counts.items())
        self.stdout.write(self.style.SUCCESS(f"batch_id={result.batch_id} {counts}"))
