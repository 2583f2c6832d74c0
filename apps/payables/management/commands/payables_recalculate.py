from __future__ import annotations

from django.core.management.base import BaseCommand

from apps.payables.services.aggregator import aggregate_all
from apps.payables.services.config import get_snapshot
from apps.payables.services.probability import refresh_probabilities


class Command(BaseCommand):
    help = "Re-aggregate contribution metrics for every user and refresh win probabilities."

    def handle(self, *args, **options):
        config = get_snapshot()
        report = aggregate_all(config)
        for warning in report.warnings:
            self.stdout.write(self.style.WARNING(warning))
        probabilities = refresh_probabilities(config)
        self.stdout.write(
            self.style.SUCCESS(f"updated={report.updated} contributors={len(probabilities)} warnings={len(report.warnings)}")
        )
