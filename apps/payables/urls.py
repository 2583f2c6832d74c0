from django.urls import path

from .views import (
    BatchDetailView,
    ContributorDetailView,
    ContributorProfileView,
    ExecuteView,
    MyContributionView,
    PayoutConfigView,
    PendingSetupRetryView,
    PendingSetupView,
    PointTransferHistoryView,
    PointTransferView,
    RecalculateView,
    SimulateView,
    StatsView,
)

urlpatterns = [
    path("payables/config/", PayoutConfigView.as_view(), name="payables-config"),
    path("payables/simulate/", SimulateView.as_view(), name="payables-simulate"),
    path("payables/execute/", ExecuteView.as_view(), name="payables-execute"),
    path("payables/batches/<uuid:batch_id>/", BatchDetailView.as_view(), name="payables-batch"),
    path("payables/pending-setup/", PendingSetupView.as_view(), name="payables-pending-setup"),
    path("payables/pending-setup/retry/", PendingSetupRetryView.as_view(), name="payables-pending-setup-retry"),
    path("payables/transfer/", PointTransferView.as_view(), name="payables-transfer"),
    path("payables/transfers/", PointTransferHistoryView.as_view(), name="payables-transfers"),
    path("payables/stats/", StatsView.as_view(), name="payables-stats"),
    path("payables/me/", MyContributionView.as_view(), name="payables-me"),
    path("payables/me/profile/", ContributorProfileView.as_view(), name="payables-me-profile"),
    path("payables/contributors/<str:handle>/", ContributorDetailView.as_view(), name="payables-contributor"),
    path("payables/recalculate/", RecalculateView.as_view(), name="payables-recalculate"),
]
