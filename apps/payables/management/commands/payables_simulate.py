from __future__ import annotations

import random

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.payables.services.simulator import simulate


class Command(BaseCommand):
    help = "Simulate a payout lottery without moving money or writing records."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--amount", type=int, required=True, help="Dollars to distribute.")
        parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible draw.")
        parser.add_argument("--include-zero", action="store_true", default=False, help="List contributors who won nothing.")

    def handle(self, *args, **options):
        amount = options["amount"]
        limit = int(getattr(settings, "PAYABLES_MAX_PAYOUT_DOLLARS", 10000))
        if amount < 1 or amount > limit:
            raise CommandError(f"Amount must be between 1 and {limit}.")
        rng = random.Random(options["seed"]) if options["seed"] is not None else None
        allocations = simulate(amount, rng=rng, include_zero=options["include_zero"])
        if not allocations:
            self.stdout.write("No eligible contributors.")
            return
        for row in allocations:
            self.stdout.write(f"{row.user_id}\t{row.username}\t{row.dollars}")
        self.stdout.write(self.style.SUCCESS(f"total={sum(row.dollars for row in allocations)} winners={len(allocations)}"))
