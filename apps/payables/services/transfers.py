from __future__ import annotations

import logging
import math
from typing import Any

from django.db import transaction
from django.db.models import Q, QuerySet

from apps.payables.categories import PointType
from apps.payables.exceptions import (
    InsufficientBalance,
    InvalidAmount,
    InvalidPointType,
    RecipientNotFound,
    SelfTransfer,
)
from apps.payables.models import PointTransferRecord
from apps.payables.services.probability import refresh_probabilities
from apps.payables.services.store import get_or_create_metrics, locked_metrics
from apps.users.models import User

logger = logging.getLogger(__name__)

# Float balances drift after fractional transfers; smaller differences are treated as equal.
BALANCE_TOLERANCE = 1e-9


def _coerce_amount(amount: Any) -> float:
    if isinstance(amount, bool):
        raise InvalidAmount()
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise InvalidAmount() from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidAmount()
    return value


def _coerce_point_type(point_type: Any) -> PointType:
    try:
        return PointType(point_type)
    except ValueError:
        raise InvalidPointType() from None


def resolve_recipient(recipient_id: int | None = None, recipient_username: str | None = None) -> User:
    if recipient_id is not None:
        user = User.objects.filter(pk=recipient_id, is_active=True).first()
    elif recipient_username:
        user = User.objects.get_by_handle(recipient_username)
        if user is not None and not user.is_active:
            user = None
    else:
        user = None
    if user is None:
        raise RecipientNotFound()
    return user


def _is_self(sender: User, recipient_id: int | None, recipient_username: str | None) -> bool:
    if recipient_id is not None:
        return recipient_id == sender.id
    if recipient_username:
        return recipient_username.strip().lstrip("@").lower() == sender.handle.lower()
    return False


def _refresh_after_transfer() -> None:
    try:
        refresh_probabilities()
    except Exception:
        logger.exception("Probability refresh after point transfer failed")


def transfer(
    sender: User,
    *,
    point_type: Any,
    amount: Any,
    recipient_id: int | None = None,
    recipient_username: str | None = None,
    memo: str = "",
) -> PointTransferRecord:
    """
    Move ``amount`` points of ``point_type`` from ``sender`` to the recipient.

    The balance check and both balance writes happen under row locks in one
    transaction together with the ledger record.
    """
    value = _coerce_amount(amount)
    kind = _coerce_point_type(point_type)
    if _is_self(sender, recipient_id, recipient_username):
        raise SelfTransfer()
    recipient = resolve_recipient(recipient_id, recipient_username)
    if recipient.id == sender.id:
        raise SelfTransfer()

    field = kind.field_name
    get_or_create_metrics(recipient)
    with transaction.atomic():
        rows = locked_metrics([sender.id, recipient.id])
        sender_row = rows.get(sender.id)
        balance = float(getattr(sender_row, field)) if sender_row is not None else 0.0
        if sender_row is None or balance + BALANCE_TOLERANCE < value:
            raise InsufficientBalance(
                f"Insufficient {kind.value}. Available: {balance:g}, requested: {value:g}.",
                balance=balance,
                requested=value,
            )
        recipient_row = rows[recipient.id]
        remaining = balance - value
        setattr(sender_row, field, remaining if remaining > BALANCE_TOLERANCE else 0.0)
        setattr(recipient_row, field, float(getattr(recipient_row, field)) + value)
        sender_row.save(update_fields=[field, "updated_at"])
        recipient_row.save(update_fields=[field, "updated_at"])
        record = PointTransferRecord.objects.create(
            sender=sender,
            sender_username=sender.handle,
            recipient=recipient,
            recipient_username=recipient.handle,
            point_type=kind,
            amount=value,
            memo=(memo or "")[:255],
        )
        transaction.on_commit(_refresh_after_transfer)

    logger.info(
        "payables.transfer.completed",
        extra={
            "transfer_id": record.id,
            "sender_id": sender.id,
            "recipient_id": recipient.id,
            "point_type": kind.value,
            "amount": value,
        },
    )
    return record


def transfer_history(user: User, limit: int = 50) -> QuerySet[PointTransferRecord]:
    return (
        PointTransferRecord.objects.filter(Q(sender=user) | Q(recipient=user))
        .order_by("-timestamp", "-id")[:limit]
    )
