from __future__ import annotations

import logging
import random
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List

from django.conf import settings
from django.db import transaction
from django.db.models import F, QuerySet
from django.db.models.functions import Greatest
from django.utils import timezone

from apps.payables.domain import ProbabilitySnapshot
from apps.payables.exceptions import InsufficientPool, ProcessorError, ProcessorSetupRequired
from apps.payables.models import PayoutConfig, PayoutRecord, PayoutStatus
from apps.payables.services.lottery import draw
from apps.payables.services.probability import take_snapshot
from apps.payables.services.processor import PaymentProcessor, get_payment_processor
from apps.payables.services.store import increment_win_count
from apps.users.models import User

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    batch_id: uuid.UUID
    records: List[PayoutRecord] = field(default_factory=list)

    @property
    def totals(self) -> Dict[str, int]:
        amounts: Counter = Counter()
        for record in self.records:
            amounts[record.status] += record.amount
        return {status: amounts.get(status, 0) for status in PayoutStatus.values}

    @property
    def counts(self) -> Dict[str, int]:
        counts = Counter(record.status for record in self.records)
        return {status: counts.get(status, 0) for status in PayoutStatus.values}


@dataclass
class RetryReport:
    batch_id: uuid.UUID
    records: List[PayoutRecord] = field(default_factory=list)
    skipped: int = 0
    expired: int = 0

    @property
    def completed(self) -> int:
        return sum(1 for record in self.records if record.status == PayoutStatus.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(1 for record in self.records if record.status == PayoutStatus.FAILED)


def _pending_setup_expiry(now: datetime) -> datetime:
    return now + timedelta(days=int(getattr(settings, "PAYABLES_PENDING_SETUP_DAYS", 30)))


def _decrement_pool(amount: int) -> None:
    PayoutConfig.objects.filter(pk=PayoutConfig.SINGLETON_PK).update(
        total_pool=Greatest(F("total_pool") - amount, 0),
        last_updated=timezone.now(),
    )


def _record_completed(**fields) -> PayoutRecord:
    with transaction.atomic():
        record = PayoutRecord.objects.create(status=PayoutStatus.COMPLETED, **fields)
        increment_win_count(record.user_id)
        _decrement_pool(record.amount)
    return record


def _pay(
    processor: PaymentProcessor,
    user: User,
    amount: int,
    *,
    batch_id: uuid.UUID,
    idempotency_key: str,
    description: str,
    fields: dict,
    record_pending: bool = True,
) -> PayoutRecord | None:
    try:
        transfer_id = processor.transfer(
            user,
            amount,
            batch_id=str(batch_id),
            idempotency_key=idempotency_key,
            description=description,
        )
    except ProcessorSetupRequired:
        if not record_pending:
            return None
        return PayoutRecord.objects.create(
            status=PayoutStatus.REQUIRES_PROCESSOR_SETUP,
            expires_at=_pending_setup_expiry(timezone.now()),
            **fields,
        )
    except ProcessorError as exc:
        logger.warning("Payout transfer failed for user %s in batch %s: %s", user.id, batch_id, exc)
        return PayoutRecord.objects.create(status=PayoutStatus.FAILED, processor_error=str(exc), **fields)
    except Exception as exc:
        logger.error("Unexpected payout error for user %s in batch %s", user.id, batch_id, exc_info=True)
        return PayoutRecord.objects.create(
            status=PayoutStatus.FAILED,
            processor_error=str(exc) or type(exc).__name__,
            **fields,
        )
    return _record_completed(processor_transfer_id=transfer_id, **fields)


def execute_payout(
    dollars: int,
    processor: PaymentProcessor | None = None,
    rng: random.Random | None = None,
    snapshot: ProbabilitySnapshot | None = None,
) -> BatchResult:
    """
    Draw ``dollars`` winners from one probability snapshot and pay each of them.

    Per-winner processor failures are recorded on the batch and never raised.
    """
    config = PayoutConfig.load()
    if isinstance(dollars, int) and not isinstance(dollars, bool) and dollars > config.total_pool:
        raise InsufficientPool(f"Requested {dollars} exceeds the payout pool of {config.total_pool}.")

    snapshot = snapshot or take_snapshot(config.to_snapshot())
    awards = draw(snapshot.probabilities, dollars, rng=rng)
    processor = processor or get_payment_processor()
    result = BatchResult(batch_id=uuid.uuid4())
    logger.info(
        "payables.batch.started",
        extra={"batch_id": str(result.batch_id), "dollars": dollars, "winners": len(awards)},
    )

    users = User.objects.in_bulk(list(awards))
    for user_id, amount in sorted(awards.items(), key=lambda item: (-item[1], item[0])):
        user = users.get(user_id)
        if user is None:
            logger.warning("Winner %s no longer exists; skipping in batch %s", user_id, result.batch_id)
            continue
        fields = {
            "batch_id": result.batch_id,
            "user": user,
            "username": snapshot.usernames.get(user_id) or user.handle,
            "amount": amount,
            "probability": snapshot.probability_for(user_id),
        }
        if not processor.has_completed_setup(user):
            record = PayoutRecord.objects.create(
                status=PayoutStatus.REQUIRES_PROCESSOR_SETUP,
                expires_at=_pending_setup_expiry(timezone.now()),
                **fields,
            )
        else:
            record = _pay(
                processor,
                user,
                amount,
                batch_id=result.batch_id,
                idempotency_key=f"{result.batch_id}:{user_id}",
                description=f"Random Payables payout - batch {result.batch_id}",
                fields=fields,
            )
        result.records.append(record)

    logger.info(
        "payables.batch.finished",
        extra={"batch_id": str(result.batch_id), "counts": result.counts, "totals": result.totals},
    )
    return result


def pending_setup_records(now: datetime | None = None) -> QuerySet[PayoutRecord]:
    """Unexpired pending-setup records that have not been paid by a retry."""
    now = now or timezone.now()
    return (
        PayoutRecord.objects.select_related("user")
        .filter(status=PayoutStatus.REQUIRES_PROCESSOR_SETUP, expires_at__gt=now, retry_of__isnull=True)
        .exclude(retries__status=PayoutStatus.COMPLETED)
        .order_by("expires_at", "id")
    )


def expired_setup_records(now: datetime | None = None) -> QuerySet[PayoutRecord]:
    now = now or timezone.now()
    return (
        PayoutRecord.objects.filter(
            status=PayoutStatus.REQUIRES_PROCESSOR_SETUP,
            expires_at__lte=now,
            retry_of__isnull=True,
        )
        .exclude(retries__status=PayoutStatus.COMPLETED)
    )


def retry_pending_setup(processor: PaymentProcessor | None = None, now: datetime | None = None) -> RetryReport:
    """
    Pay pending-setup winners who have since completed payee setup.

    Each retry is a new record pointing at the original through ``retry_of``.
    """
    now = now or timezone.now()
    processor = processor or get_payment_processor()
    report = RetryReport(batch_id=uuid.uuid4(), expired=expired_setup_records(now).count())

    for pending in list(pending_setup_records(now)):
        if not processor.has_completed_setup(pending.user):
            report.skipped += 1
            continue
        with transaction.atomic():
            original = PayoutRecord.objects.select_for_update().get(pk=pending.pk)
            if original.retries.filter(status=PayoutStatus.COMPLETED).exists():
                report.skipped += 1
                continue
            attempt = original.retries.count() + 1
            fields = {
                "batch_id": report.batch_id,
                "user": pending.user,
                "username": original.username,
                "amount": original.amount,
                "probability": original.probability,
                "retry_of": original,
            }
            record = _pay(
                processor,
                pending.user,
                original.amount,
                batch_id=report.batch_id,
                idempotency_key=f"retry:{original.id}:{attempt}",
                description=f"Retry payout for {original.username} from batch {original.batch_id}",
                fields=fields,
                record_pending=False,
            )
        if record is None:
            report.skipped += 1
            continue
        report.records.append(record)

    logger.info(
        "payables.retry.finished",
        extra={
            "batch_id": str(report.batch_id),
            "completed": report.completed,
            "failed": report.failed,
            "skipped": report.skipped,
            "expired": report.expired,
        },
    )
    return report
