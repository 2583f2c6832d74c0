from __future__ import annotations

import logging
from typing import Any, Mapping

from apps.payments.clients import get_stripe_client
from apps.payments.models import PayeeAccount, PayeeProvider
from apps.users.models import User

logger = logging.getLogger(__name__)


def get_payee_account(user: User) -> PayeeAccount | None:
    return PayeeAccount.objects.filter(user=user).first()


def has_completed_setup(user: User) -> bool:
    account = get_payee_account(user)
    return account is not None and account.setup_complete


def start_onboarding(user: User, refresh_url: str, return_url: str) -> str:
    """Create the connected account if needed and return a hosted onboarding URL."""
    client = get_stripe_client()
    account, _ = PayeeAccount.objects.get_or_create(user=user, defaults={"provider": PayeeProvider.STRIPE})
    if not account.account_id:
        remote = client.create_connect_account(email=user.email, metadata={"user_id": str(user.id)})
        account.account_id = remote.id
        account.save(update_fields=["account_id", "updated_at"])
    link = client.create_account_link(account.account_id, refresh_url=refresh_url, return_url=return_url)
    return link.url


def update_payee_from_stripe(data: Mapping[str, Any]) -> PayeeAccount | None:
    """Mirror an ``account.updated`` payload onto the matching payee account."""
    account_id = data.get("id")
    if not account_id:
        return None
    account = PayeeAccount.objects.filter(provider=PayeeProvider.STRIPE, account_id=account_id).first()
    if account is None:
        logger.warning("No payee account found for connected account %s", account_id)
        return None
    account.payouts_enabled = bool(data.get("payouts_enabled"))
    account.details_submitted = bool(data.get("details_submitted"))
    account.save(update_fields=["payouts_enabled", "details_submitted", "updated_at"])
    logger.info(
        "payments.payee.updated",
        extra={"user_id": account.user_id, "payouts_enabled": account.payouts_enabled},
    )
    return account


def disconnect_payee(user: User) -> None:
    PayeeAccount.objects.filter(user=user).update(account_id="", payouts_enabled=False, details_submitted=False)
