from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import stripe
from django.conf import settings

from apps.payables.exceptions import ProcessorError, ProcessorSetupRequired, ProcessorUnavailable
from apps.payments.clients import StripeClient, get_stripe_client
from apps.payments.feature_flag import payments_enabled
from apps.payments.services import get_payee_account, has_completed_setup
from apps.users.models import User

logger = logging.getLogger(__name__)


@runtime_checkable
class PaymentProcessor(Protocol):
    """Moves whole-dollar amounts to a payee."""

    def has_completed_setup(self, user: User) -> bool: ...

    def transfer(
        self,
        user: User,
        amount: int,
        *,
        batch_id: str,
        idempotency_key: str,
        description: str = "",
    ) -> str: ...


class StripeConnectProcessor:
    def __init__(self, client: StripeClient | None = None, currency: str | None = None) -> None:
        self._client = client
        self.currency = currency or getattr(settings, "PAYABLES_CURRENCY", "usd")

    @property
    def client(self) -> StripeClient:
        if self._client is None:
            try:
                self._client = get_stripe_client()
            except RuntimeError as exc:
                raise ProcessorUnavailable(str(exc)) from exc
        return self._client

    def has_completed_setup(self, user: User) -> bool:
        return has_completed_setup(user)

    def transfer(
        self,
        user: User,
        amount: int,
        *,
        batch_id: str,
        idempotency_key: str,
        description: str = "",
    ) -> str:
        account = get_payee_account(user)
        if account is None or not account.setup_complete:
            raise ProcessorSetupRequired(f"User {user.id} has not completed payee setup.")
        try:
            result = self.client.create_transfer(
                amount_cents=int(amount) * 100,
                currency=self.currency,
                destination=account.account_id,
                transfer_group=batch_id,
                idempotency_key=idempotency_key,
                description=description or f"Random Payables payout - batch {batch_id}",
                metadata={"batch_id": batch_id, "user_id": str(user.id), "username": user.handle},
            )
        except stripe.APIConnectionError as exc:
            raise ProcessorUnavailable(str(exc)) from exc
        except stripe.StripeError as exc:
            raise ProcessorError(getattr(exc, "user_message", None) or str(exc)) from exc
        return result.id


class DisabledProcessor:
    """Used while the payments feature flag is off; every payee is treated as pending setup."""

    def has_completed_setup(self, user: User) -> bool:
        return False

    def transfer(self, user: User, amount: int, *, batch_id: str, idempotency_key: str, description: str = "") -> str:
        raise ProcessorSetupRequired("Payments are disabled.")


def get_payment_processor() -> PaymentProcessor:
    if not payments_enabled():
        logger.info("payables.processor.disabled")
        return DisabledProcessor()
    return StripeConnectProcessor()
