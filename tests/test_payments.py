from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import stripe
from django.test import TestCase
from rest_framework.test import APIClient

from apps.payables.exceptions import ProcessorError, ProcessorSetupRequired, ProcessorUnavailable
from apps.payables.services.processor import DisabledProcessor, StripeConnectProcessor, get_payment_processor
from apps.payments.models import PayeeAccount
from apps.payments.services import disconnect_payee, has_completed_setup, update_payee_from_stripe
from apps.users.models import User


class PayeeAccountTests(TestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(email="payee@example.com", handle="payee", name="Payee", password="pass12345")

    def test_setup_requires_account_and_enabled_payouts(self):
        account = PayeeAccount.objects.create(user=self.user)
        self.assertFalse(account.setup_complete)
        account.account_id = "acct_123"
        self.assertFalse(account.setup_complete)
        account.payouts_enabled = True
        self.assertTrue(account.setup_complete)

    def test_account_updated_payload_is_mirrored(self):
        PayeeAccount.objects.create(user=self.user, account_id="acct_123")

        account = update_payee_from_stripe({"id": "acct_123", "payouts_enabled": True, "details_submitted": True})

        self.assertIsNotNone(account)
        self.assertTrue(has_completed_setup(self.user))
        self.assertIsNone(update_payee_from_stripe({"id": "acct_unknown", "payouts_enabled": True}))

    def test_disconnect_clears_setup(self):
        PayeeAccount.objects.create(user=self.user, account_id="acct_123", payouts_enabled=True)

        disconnect_payee(self.user)

        self.assertFalse(has_completed_setup(self.user))


class ConnectWebhookTests(TestCase):
    url = "/api/v1/payments/stripe/connect-webhook/"

    def setUp(self) -> None:
        self.user = User.objects.create_user(email="hook@example.com", handle="hook", name="Hook", password="pass12345")
        PayeeAccount.objects.create(user=self.user, account_id="acct_hook")
        self.client = APIClient()

    def test_account_updated_enables_payouts(self):
        event = {
            "type": "account.updated",
            "data": {"object": {"id": "acct_hook", "payouts_enabled": True, "details_submitted": True}},
        }
        client = MagicMock()
        client.construct_event.return_value = event
        with patch("apps.payments.webhook.get_stripe_client", return_value=client):
            response = self.client.post(
                self.url, data=json.dumps(event), content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=sig"
            )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(PayeeAccount.objects.get(user=self.user).payouts_enabled)

    def test_missing_or_bad_signature_is_rejected(self):
        client = MagicMock()
        client.construct_event.side_effect = stripe.SignatureVerificationError("bad signature", "t=1,v1=bad")
        with patch("apps.payments.webhook.get_stripe_client", return_value=client):
            missing = self.client.post(self.url, data="{}", content_type="application/json")
            bad = self.client.post(self.url, data="{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=bad")

        self.assertEqual(missing.status_code, 400)
        self.assertEqual(bad.status_code, 400)
        self.assertFalse(PayeeAccount.objects.get(user=self.user).payouts_enabled)

    def test_disabled_payments_refuse_webhooks(self):
        with self.settings(FEATURE_FLAGS={"payments": False}):
            response = self.client.post(self.url, data="{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="x")
        self.assertEqual(response.status_code, 403)


@pytest.mark.django_db
def test_onboarding_creates_connected_account():
    user = User.objects.create_user(email="onb@example.com", handle="onb", name="Onb", password="pass12345")
    client = MagicMock()
    client.create_connect_account.return_value = SimpleNamespace(id="acct_new")
    client.create_account_link.return_value = SimpleNamespace(url="https://connect.stripe.com/setup/x")
    api = APIClient()
    api.force_authenticate(user=user)

    with patch("apps.payments.services.get_stripe_client", return_value=client):
        response = api.post(
            "/api/v1/payments/payee/onboard/",
            data={"refresh_url": "https://example.com/refresh", "return_url": "https://example.com/done"},
            format="json",
        )

    assert response.status_code == 201
    assert response.data["url"] == "https://connect.stripe.com/setup/x"
    assert PayeeAccount.objects.get(user=user).account_id == "acct_new"

    status = api.get("/api/v1/payments/payee/")
    assert status.status_code == 200
    assert status.data["setup_complete"] is False


@pytest.mark.django_db
def test_stripe_processor_transfers_whole_dollars_in_cents():
    user = User.objects.create_user(email="win@example.com", handle="win", name="Win", password="pass12345")
    PayeeAccount.objects.create(user=user, account_id="acct_win", payouts_enabled=True)
    client = MagicMock()
    client.create_transfer.return_value = SimpleNamespace(id="tr_1")
    processor = StripeConnectProcessor(client=client, currency="usd")

    transfer_id = processor.transfer(user, 5, batch_id="batch-1", idempotency_key="batch-1:1")

    assert transfer_id == "tr_1"
    kwargs = client.create_transfer.call_args.kwargs
    assert kwargs["amount_cents"] == 500
    assert kwargs["destination"] == "acct_win"
    assert kwargs["transfer_group"] == "batch-1"
    assert kwargs["idempotency_key"] == "batch-1:1"
    assert processor.has_completed_setup(user) is True


@pytest.mark.django_db
def test_stripe_processor_maps_errors():
    user = User.objects.create_user(email="err@example.com", handle="err", name="Err", password="pass12345")
    client = MagicMock()
    processor = StripeConnectProcessor(client=client)

    with pytest.raises(ProcessorSetupRequired):
        processor.transfer(user, 1, batch_id="b", idempotency_key="k")

    PayeeAccount.objects.create(user=user, account_id="acct_err", payouts_enabled=True)
    client.create_transfer.side_effect = stripe.APIConnectionError("network down")
    with pytest.raises(ProcessorUnavailable):
        processor.transfer(user, 1, batch_id="b", idempotency_key="k")

    client.create_transfer.side_effect = stripe.InvalidRequestError("No such destination", "destination")
    with pytest.raises(ProcessorError):
        processor.transfer(user, 1, batch_id="b", idempotency_key="k")


def test_missing_api_key_makes_processor_unavailable(monkeypatch):
    monkeypatch.delenv("STRIPE_API_KEY", raising=False)

    with pytest.raises(ProcessorUnavailable):
        StripeConnectProcessor().client


def test_processor_follows_payments_flag(settings):
    settings.FEATURE_FLAGS = {"payments": False}
    assert isinstance(get_payment_processor(), DisabledProcessor)

    settings.FEATURE_FLAGS = {"payments": True}
    assert isinstance(get_payment_processor(), StripeConnectProcessor)


@pytest.mark.django_db
def test_stripe_processor_setup_check_follows_payee_account():
    user = User.objects.create_user(email="setup@example.com", handle="setup", name="Setup", password="pass12345")
    processor = StripeConnectProcessor(client=MagicMock())

    assert processor.has_completed_setup(user) is False
    PayeeAccount.objects.create(user=user, account_id="acct_setup", payouts_enabled=False)
    assert processor.has_completed_setup(user) is False
    update_payee_from_stripe({"id": "acct_setup", "payouts_enabled": True, "details_submitted": True})
    assert processor.has_completed_setup(user) is True
