from __future__ import annotations

from apps.payments.clients.stripe import StripeClient, get_stripe_client

__all__ = ["StripeClient", "get_stripe_client"]
