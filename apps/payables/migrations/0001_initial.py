from __future__ import annotations

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def _gte_zero(field: str) -> models.CheckConstraint:
    return models.CheckConstraint(
        condition=models.Q((f"{field}__gte", 0)),
        name=f"payables_metrics_{field}_gte_0",
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ContributorProfile",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("github_username", models.CharField(blank=True, max_length=39)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contributor_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="ContributionMetrics",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("username", models.CharField(db_index=True, max_length=30)),
                ("code_contributions", models.FloatField(default=0)),
                ("content_creation", models.FloatField(default=0)),
                ("community_engagement", models.FloatField(default=0)),
                ("game_publication_points", models.FloatField(default=0)),
                ("github_repo_points", models.FloatField(default=0)),
                ("peer_review_points", models.FloatField(default=0)),
                ("total_points", models.FloatField(default=0)),
                ("win_probability", models.FloatField(default=0)),
                ("win_count", models.PositiveIntegerField(default=0)),
                ("last_calculated", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contribution_metrics",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-win_probability", "user_id"],
                "constraints": [
                    _gte_zero("code_contributions"),
                    _gte_zero("content_creation"),
                    _gte_zero("community_engagement"),
                    _gte_zero("game_publication_points"),
                    _gte_zero("github_repo_points"),
                    _gte_zero("peer_review_points"),
                    _gte_zero("total_points"),
                    models.CheckConstraint(
                        condition=models.Q(("win_probability__gte", 0), ("win_probability__lte", 1)),
                        name="payables_metrics_win_probability_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayoutConfig",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "total_pool",
                    models.PositiveIntegerField(default=1000, help_text="Whole currency units available for payouts."),
                ),
                ("batch_size", models.PositiveIntegerField(default=100)),
                ("game_publication_weight", models.FloatField(default=0.25)),
                ("community_weight", models.FloatField(default=0.15)),
                ("code_weight", models.FloatField(default=0.05)),
                ("content_weight", models.FloatField(default=0.05)),
                ("github_platform_weight", models.FloatField(default=0.4)),
                ("peer_review_weight", models.FloatField(default=0.4)),
                ("other_contributions_weight", models.FloatField(default=0.2)),
                ("github_owner", models.CharField(blank=True, default="", max_length=100)),
                ("github_repo", models.CharField(blank=True, default="", max_length=100)),
                ("points_per_commit", models.FloatField(default=10)),
                ("points_per_line_changed", models.FloatField(default=0.1)),
                ("last_updated", models.DateTimeField(default=django.utils.timezone.now)),
                ("next_scheduled_run", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("code_weight__gte", 0),
                            ("community_weight__gte", 0),
                            ("content_weight__gte", 0),
                            ("game_publication_weight__gte", 0),
                            ("github_platform_weight__gte", 0),
                            ("other_contributions_weight__gte", 0),
                            ("peer_review_weight__gte", 0),
                        ),
                        name="payables_config_weights_gte_0",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayoutRecord",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("batch_id", models.UUIDField(db_index=True, default=uuid.uuid4, editable=False)),
                ("username", models.CharField(max_length=30)),
                ("amount", models.PositiveIntegerField(help_text="Whole currency units.")),
                ("probability", models.FloatField()),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("requires_processor_setup", "Requires processor setup"),
                        ],
                        max_length=32,
                    ),
                ),
                ("processor_transfer_id", models.CharField(blank=True, max_length=255)),
                ("processor_error", models.TextField(blank=True)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                (
                    "retry_of",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="retries",
                        to="payables.payoutrecord",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payout_records",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp", "-id"],
                "indexes": [
                    models.Index(fields=["user", "timestamp"], name="payables_pa_user_id_3c0a1e_idx"),
                    models.Index(fields=["status", "expires_at"], name="payables_pa_status_8f2b4d_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="payables_payout_amount_gt_0"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PointTransferRecord",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("sender_username", models.CharField(max_length=30)),
                ("recipient_username", models.CharField(max_length=30)),
                (
                    "point_type",
                    models.CharField(
                        choices=[
                            ("totalPoints", "Other contributions"),
                            ("githubRepoPoints", "GitHub repository"),
                            ("peerReviewPoints", "Peer review"),
                        ],
                        max_length=32,
                    ),
                ),
                ("amount", models.FloatField()),
                ("memo", models.CharField(blank=True, max_length=255)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "recipient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="point_transfers_received",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="point_transfers_sent",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp", "-id"],
                "indexes": [
                    models.Index(fields=["sender", "timestamp"], name="payables_po_sender__5e7c21_idx"),
                    models.Index(fields=["recipient", "timestamp"], name="payables_po_recipie_a94d03_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="payables_transfer_amount_gt_0"),
                    models.CheckConstraint(
                        condition=models.Q(("sender", models.F("recipient")), _negated=True),
                        name="payables_transfer_not_self",
                    ),
                ],
            },
        ),
    ]
