from __future__ import annotations

import random

from rest_framework import permissions, status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.payables.exceptions import PayablesError, RecipientNotFound
from apps.payables.models import ContributionMetrics, ContributorProfile, PayoutRecord
from apps.payables.serializers import (
    AllocationSerializer,
    ContributionMetricsSerializer,
    ContributorProfileSerializer,
    PayoutAmountSerializer,
    PayoutConfigSerializer,
    PayoutRecordSerializer,
    PointTransferRecordSerializer,
    PointTransferSerializer,
    RecalculateSerializer,
    RecentPayoutSerializer,
    SimulateSerializer,
    TopContributorSerializer,
)
from apps.payables.services.aggregator import aggregate_all
from apps.payables.services.config import get_config, update_config
from apps.payables.services.executor import execute_payout, pending_setup_records, retry_pending_setup
from apps.payables.services.probability import refresh_probabilities
from apps.payables.services.simulator import simulate
from apps.payables.services.stats import payables_stats, user_summary
from apps.payables.services.transfers import transfer, transfer_history
from apps.payables.tasks import recalculate_contributions
from apps.users.models import User


def error_response(exc: PayablesError) -> Response:
    code = status.HTTP_404_NOT_FOUND if isinstance(exc, RecipientNotFound) else status.HTTP_400_BAD_REQUEST
    return Response({"detail": exc.detail, "code": exc.code}, status=code)


class PayoutConfigView(APIView):
    def get_permissions(self):  # type: ignore[override]
        if self.request.method == "GET":
            return [permissions.IsAuthenticated()]
        return [permissions.IsAdminUser()]

    def get(self, request: Request) -> Response:
        return Response(PayoutConfigSerializer(get_config()).data)

    def patch(self, request: Request) -> Response:
        try:
            config = update_config(request.data)
        except PayablesError as exc:
            return error_response(exc)
        return Response(PayoutConfigSerializer(config).data)


class SimulateView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    throttle_scope = "payables_simulate"

    def post(self, request: Request) -> Response:
        serializer = SimulateSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except DRFValidationError:
            return Response(
                {"detail": "Amount must be between 1 and the payout maximum.", "code": "invalid_amount"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        data = serializer.validated_data
        rng = random.Random(data["seed"]) if "seed" in data else None
        allocations = simulate(data["amount"], rng=rng, include_zero=data["include_zero"])
        return Response(
            {
                "amount": data["amount"],
                "results": AllocationSerializer(allocations, many=True).data,
            }
        )


class ExecuteView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request: Request) -> Response:
        serializer = PayoutAmountSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except DRFValidationError:
            return Response(
                {"detail": "Amount must be between 1 and the payout maximum.", "code": "invalid_amount"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            result = execute_payout(serializer.validated_data["amount"])
        except PayablesError as exc:
            return error_response(exc)
        return Response(
            {
                "batch_id": str(result.batch_id),
                "counts": result.counts,
                "totals": result.totals,
                "records": PayoutRecordSerializer(result.records, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )


class BatchDetailView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def get(self, request: Request, batch_id) -> Response:
        records = PayoutRecord.objects.filter(batch_id=batch_id).order_by("-amount", "id")
        if not records.exists():
            return Response({"detail": "Batch not found.", "code": "batch_not_found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(
            {"batch_id": str(batch_id), "records": PayoutRecordSerializer(records, many=True).data}
        )


class PendingSetupView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def get(self, request: Request) -> Response:
        records = pending_setup_records()
        return Response({"results": PayoutRecordSerializer(records, many=True).data})


class PendingSetupRetryView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request: Request) -> Response:
        report = retry_pending_setup()
        return Response(
            {
                "batch_id": str(report.batch_id),
                "completed": report.completed,
                "failed": report.failed,
                "skipped": report.skipped,
                "expired": report.expired,
                "records": PayoutRecordSerializer(report.records, many=True).data,
            }
        )


class PointTransferView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    throttle_scope = "payables_transfer"

    def post(self, request: Request) -> Response:
        serializer = PointTransferSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except DRFValidationError as exc:
            detail = getattr(exc, "detail", None)
            if isinstance(detail, dict) and "amount" in detail:
                return Response(
                    {"detail": "Amount must be greater than zero.", "code": "invalid_amount"},
                    status=status.HTTP_400_BAD_REQUEST,
                )
            raise
        data = serializer.validated_data
        try:
            record = transfer(
                request.user,
                recipient_id=data.get("recipient_id"),
                recipient_username=data.get("recipient_username"),
                point_type=data["point_type"],
                amount=data["amount"],
                memo=data.get("memo", ""),
            )
        except PayablesError as exc:
            return error_response(exc)
        return Response(PointTransferRecordSerializer(record).data, status=status.HTTP_201_CREATED)


class PointTransferHistoryView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request: Request) -> Response:
        limit_raw = request.query_params.get("limit", "50")
        try:
            limit = max(1, min(int(limit_raw), 200))
        except ValueError:
            return Response({"detail": "Invalid limit."}, status=status.HTTP_400_BAD_REQUEST)
        records = transfer_history(request.user, limit=limit)
        return Response({"results": PointTransferRecordSerializer(records, many=True).data})


class StatsView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request: Request) -> Response:
        stats = payables_stats()
        return Response(
            {
                "total_contributors": stats["total_contributors"],
                "total_paid_out": stats["total_paid_out"],
                "current_pool_size": stats["current_pool_size"],
                "top_contributors": TopContributorSerializer(stats["top_contributors"], many=True).data,
                "recent_payouts": RecentPayoutSerializer(stats["recent_payouts"], many=True).data,
            }
        )


class MyContributionView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request: Request) -> Response:
        summary = user_summary(request.user)
        metrics = summary["metrics"]
        return Response(
            {
                "user_id": summary["user_id"],
                "username": summary["username"],
                "metrics": ContributionMetricsSerializer(metrics).data if metrics else None,
                "win_probability": summary["win_probability"],
                "win_count": summary["win_count"],
                "total_paid": summary["total_paid"],
                "pending_setup": summary["pending_setup"],
                "recent_payouts": PayoutRecordSerializer(summary["recent_payouts"], many=True).data,
                "empty": metrics is None,
            }
        )


class ContributorDetailView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request: Request, handle: str) -> Response:
        user = User.objects.get_by_handle(handle)
        metrics = ContributionMetrics.objects.filter(user=user).first() if user else None
        if metrics is None:
            return Response(
                {"detail": "Contributor not found.", "code": "contributor_not_found"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(ContributionMetricsSerializer(metrics).data)


class RecalculateView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request: Request) -> Response:
        serializer = RecalculateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if serializer.validated_data["run_async"]:
            recalculate_contributions.delay()
            return Response({"queued": True}, status=status.HTTP_202_ACCEPTED)
        report = aggregate_all()
        probabilities = refresh_probabilities()
        return Response(
            {
                "updated": report.updated,
                "warnings": report.warnings,
                "contributors": len(probabilities),
            }
        )


class ContributorProfileView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request: Request) -> Response:
        profile, _ = ContributorProfile.objects.get_or_create(user=request.user)
        return Response(ContributorProfileSerializer(profile).data)

    def put(self, request: Request) -> Response:
        profile, _ = ContributorProfile.objects.get_or_create(user=request.user)
        serializer = ContributorProfileSerializer(profile, data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
