from __future__ import annotations

import logging

from celery import shared_task
from django.utils import timezone

from apps.payables.models import PayoutConfig
from apps.payables.services.aggregator import aggregate_all
from apps.payables.services.config import get_snapshot
from apps.payables.services.probability import refresh_probabilities

logger = logging.getLogger(__name__)


@shared_task
def recalculate_contributions() -> dict:
    """Re-aggregate every contributor, then refresh win probabilities."""
    config = get_snapshot()
    report = aggregate_all(config)
    probabilities = refresh_probabilities(config)
    PayoutConfig.objects.filter(pk=PayoutConfig.SINGLETON_PK).update(last_updated=timezone.now())
    logger.info(
        "payables.recalculate.finished",
        extra={"updated": report.updated, "contributors": len(probabilities)},
    )
    return {"updated": report.updated, "warnings": len(report.warnings), "contributors": len(probabilities)}
