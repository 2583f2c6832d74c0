from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.core.models import AppendOnlyModel, BaseModel
from apps.payables.categories import PointType
from apps.payables.domain import PayoutConfigSnapshot

NON_NEGATIVE_METRIC_FIELDS = (
    "code_contributions",
    "content_creation",
    "community_engagement",
    "game_publication_points",
    "github_repo_points",
    "peer_review_points",
    "total_points",
)


class ContributorProfile(BaseModel):
    """External identities used by activity sources."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="contributor_profile",
    )
    github_username = models.CharField(max_length=39, blank=True)

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.user_id}:{self.github_username or '-'}"


class ContributionMetrics(BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="contribution_metrics",
    )
    username = models.CharField(max_length=30, db_index=True)
    code_contributions = models.FloatField(default=0)
    content_creation = models.FloatField(default=0)
    community_engagement = models.FloatField(default=0)
    game_publication_points = models.FloatField(default=0)
    github_repo_points = models.FloatField(default=0)
    peer_review_points = models.FloatField(default=0)
    total_points = models.FloatField(default=0)
    win_probability = models.FloatField(default=0)
    win_count = models.PositiveIntegerField(default=0)
    last_calculated = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-win_probability", "user_id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(**{f"{name}__gte": 0}),
                name=f"payables_metrics_{name}_gte_0",
            )
            for name in NON_NEGATIVE_METRIC_FIELDS
        ] + [
            models.CheckConstraint(
                condition=models.Q(win_probability__gte=0) & models.Q(win_probability__lte=1),
                name="payables_metrics_win_probability_range",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.username} ({self.win_probability:.4f})"


class PayoutConfig(BaseModel):
    """Singleton row (pk=1) holding pool size and weights."""

    SINGLETON_PK = 1

    total_pool = models.PositiveIntegerField(default=1000, help_text="Whole currency units available for payouts.")
    batch_size = models.PositiveIntegerField(default=100)
    game_publication_weight = models.FloatField(default=0.25)
    community_weight = models.FloatField(default=0.15)
    code_weight = models.FloatField(default=0.05)
    content_weight = models.FloatField(default=0.05)
    github_platform_weight = models.FloatField(default=0.4)
    peer_review_weight = models.FloatField(default=0.4)
    other_contributions_weight = models.FloatField(default=0.2)
    github_owner = models.CharField(max_length=100, blank=True, default="")
    github_repo = models.CharField(max_length=100, blank=True, default="")
    points_per_commit = models.FloatField(default=10)
    points_per_line_changed = models.FloatField(default=0.1)
    last_updated = models.DateTimeField(default=timezone.now)
    next_scheduled_run = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(
                    game_publication_weight__gte=0,
                    community_weight__gte=0,
                    code_weight__gte=0,
                    content_weight__gte=0,
                    github_platform_weight__gte=0,
                    peer_review_weight__gte=0,
                    other_contributions_weight__gte=0,
                ),
                name="payables_config_weights_gte_0",
            ),
        ]

    @classmethod
    def load(cls) -> "PayoutConfig":
        config, _ = cls.objects.get_or_create(
            pk=cls.SINGLETON_PK,
            defaults={
                "github_owner": getattr(settings, "PAYABLES_GITHUB_OWNER", ""),
                "github_repo": getattr(settings, "PAYABLES_GITHUB_REPO", ""),
            },
        )
        return config

    def to_snapshot(self) -> PayoutConfigSnapshot:
        return PayoutConfigSnapshot(
            total_pool=self.total_pool,
            batch_size=self.batch_size,
            game_publication_weight=self.game_publication_weight,
            community_weight=self.community_weight,
            code_weight=self.code_weight,
            content_weight=self.content_weight,
            github_platform_weight=self.github_platform_weight,
            peer_review_weight=self.peer_review_weight,
            other_contributions_weight=self.other_contributions_weight,
            github_owner=self.github_owner,
            github_repo=self.github_repo,
            points_per_commit=self.points_per_commit,
            points_per_line_changed=self.points_per_line_changed,
        )

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"PayoutConfig(pool={self.total_pool})"


class PayoutStatus(models.TextChoices):
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REQUIRES_PROCESSOR_SETUP = "requires_processor_setup", "Requires processor setup"


class PayoutRecord(AppendOnlyModel):
    batch_id = models.UUIDField(default=uuid.uuid4, editable=False, db_index=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payout_records",
    )
    username = models.CharField(max_length=30)
    amount = models.PositiveIntegerField(help_text="Whole currency units.")
    probability = models.FloatField()
    timestamp = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=32, choices=PayoutStatus.choices)
    processor_transfer_id = models.CharField(max_length=255, blank=True)
    processor_error = models.TextField(blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    retry_of = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="retries",
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["user", "timestamp"], name="payables_pa_user_id_3c0a1e_idx"),
            models.Index(fields=["status", "expires_at"], name="payables_pa_status_8f2b4d_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="payables_payout_amount_gt_0"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.batch_id}:{self.username}:{self.amount}:{self.status}"


class PointTransferRecord(AppendOnlyModel):
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="point_transfers_sent",
    )
    sender_username = models.CharField(max_length=30)
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="point_transfers_received",
    )
    recipient_username = models.CharField(max_length=30)
    point_type = models.CharField(max_length=32, choices=PointType.choices)
    amount = models.FloatField()
    memo = models.CharField(max_length=255, blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["sender", "timestamp"], name="payables_po_sender__5e7c21_idx"),
            models.Index(fields=["recipient", "timestamp"], name="payables_po_recipie_a94d03_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="payables_transfer_amount_gt_0"),
            models.CheckConstraint(
                condition=~models.Q(sender=models.F("recipient")),
                name="payables_transfer_not_self",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.sender_username}->{self.recipient_username} {self.amount} {self.point_type}"
