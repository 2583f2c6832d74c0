from __future__ import annotations

from apps.payables.services.aggregator import aggregate_all, aggregate_user, record_activity
from apps.payables.services.executor import execute_payout, pending_setup_records, retry_pending_setup
from apps.payables.services.probability import calculate_probabilities, refresh_probabilities, take_snapshot
from apps.payables.services.simulator import simulate
from apps.payables.services.transfers import transfer, transfer_history

__all__ = [
    "aggregate_all",
    "aggregate_user",
    "calculate_probabilities",
    "execute_payout",
    "pending_setup_records",
    "record_activity",
    "refresh_probabilities",
    "retry_pending_setup",
    "simulate",
    "take_snapshot",
    "transfer",
    "transfer_history",
]
