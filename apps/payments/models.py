from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class PayeeProvider(models.TextChoices):
    STRIPE = "stripe", "Stripe"


class PayeeAccount(BaseModel):
    """Processor-side account that receives payouts for a user."""

    user = models.OneToOneField("users.User", on_delete=models.CASCADE, related_name="payee_account")
    provider = models.CharField(max_length=16, choices=PayeeProvider.choices, default=PayeeProvider.STRIPE)
    account_id = models.CharField(max_length=255, blank=True, db_index=True)
    payouts_enabled = models.BooleanField(default=False)
    details_submitted = models.BooleanField(default=False)

    class Meta:
        indexes = [
            models.Index(fields=["provider", "account_id"], name="payments_payee_provider_idx"),
        ]

    @property
    def setup_complete(self) -> bool:
        return bool(self.account_id) and self.payouts_enabled

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"PayeeAccount<{self.user_id} {self.provider}>"
