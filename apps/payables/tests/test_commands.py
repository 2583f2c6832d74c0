from __future__ import annotations

from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from apps.payables.models import ContributionMetrics, PayoutConfig, PayoutRecord
from apps.users.models import User

from .fakes import FakeProcessor


def _contributor(handle: str, **points) -> User:
    user = User.objects.create_user(email=f"{handle}@example.com", password="pass1234", handle=handle)
    ContributionMetrics.objects.create(user=user, username=handle, **points)
    return user


@pytest.mark.django_db
def test_simulate_without_contributors():
    out = StringIO()
    call_command("payables_simulate", "--amount", "5", stdout=out)
    assert "No eligible contributors." in out.getvalue()


@pytest.mark.django_db
def test_simulate_prints_allocations():
    alice = _contributor("alice", total_points=1)
    out = StringIO()

    call_command("payables_simulate", "--amount", "5", "--seed", "9", stdout=out)

    output = out.getvalue()
    assert f"{alice.id}\talice\t5" in output
    assert "total=5 winners=1" in output
    assert PayoutRecord.objects.count() == 0


@pytest.mark.django_db
def test_simulate_rejects_out_of_range_amount():
    with pytest.raises(CommandError):
        call_command("payables_simulate", "--amount", "0")


@pytest.mark.django_db
def test_execute_prints_status_counts():
    alice = _contributor("alice", total_points=1)
    out = StringIO()

    with patch(
        "apps.payables.services.executor.get_payment_processor",
        return_value=FakeProcessor(ready=[alice.id]),
    ):
        call_command("payables_execute", "--amount", "3", stdout=out)

    assert "completed=1" in out.getvalue()
    assert PayoutConfig.load().total_pool == 997


@pytest.mark.django_db
def test_execute_over_pool_fails():
    _contributor("alice", total_points=1)
    PayoutConfig.objects.filter(pk=PayoutConfig.load().pk).update(total_pool=1)

    with pytest.raises(CommandError):
        call_command("payables_execute", "--amount", "2")


@pytest.mark.django_db
def test_recalculate_and_retry_commands():
    _contributor("alice", content_creation=40)
    out = StringIO()

    call_command("payables_recalculate", stdout=out)
    with patch("apps.payables.services.executor.get_payment_processor", return_value=FakeProcessor()):
        call_command("payables_retry_pending", stdout=out)

    output = out.getvalue()
    assert "updated=1 contributors=1" in output
    assert "completed=0" in output
    assert ContributionMetrics.objects.get(user__handle="alice").total_points == pytest.approx(2.0)
