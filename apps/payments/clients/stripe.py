from __future__ import annotations

import os
from typing import Any, Dict, Optional

import stripe


class StripeClient:
    def __init__(self, api_key: str, webhook_secret: str | None = None) -> None:
        stripe.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_connect_account(self, email: str, metadata: Optional[Dict[str, Any]] = None) -> stripe.Account:
        return stripe.Account.create(
            type="express",
            email=email,
            capabilities={"transfers": {"requested": True}},
            business_type="individual",
            metadata=metadata or {},
        )

    def create_account_link(self, account_id: str, refresh_url: str, return_url: str) -> stripe.AccountLink:
        return stripe.AccountLink.create(
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
        )

    def retrieve_account(self, account_id: str) -> stripe.Account:
        return stripe.Account.retrieve(account_id)

    def create_transfer(
        self,
        *,
        amount_cents: int,
        currency: str,
        destination: str,
        transfer_group: str,
        idempotency_key: str,
        description: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> stripe.Transfer:
        return stripe.Transfer.create(
            amount=amount_cents,
            currency=currency,
            destination=destination,
            transfer_group=transfer_group,
            description=description,
            metadata=metadata or {},
            idempotency_key=idempotency_key,
        )

    def construct_event(self, payload: bytes, signature: str) -> stripe.Event:
        if not self.webhook_secret:
            raise ValueError("Webhook secret not configured")
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)


def get_stripe_client(overrides: Optional[Dict[str, Any]] = None) -> StripeClient:
    api_key = (overrides or {}).get("api_key") or os.getenv("STRIPE_API_KEY")
    if not api_key:
        raise RuntimeError("STRIPE_API_KEY is not set")
    webhook_secret = (overrides or {}).get("webhook_secret") or os.getenv("STRIPE_WEBHOOK_SECRET")
    return StripeClient(api_key=api_key, webhook_secret=webhook_secret)
