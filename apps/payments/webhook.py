from __future__ import annotations

import stripe
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.payments.clients import get_stripe_client
from apps.payments.services import update_payee_from_stripe
from .feature_flag import payments_enabled


@method_decorator(csrf_exempt, name="dispatch")
class StripeConnectWebhookView(APIView):
    authentication_classes: list = []
    permission_classes: list = []

    def post(self, request: Request) -> Response:
        if not payments_enabled():
            return Response(status=status.HTTP_403_FORBIDDEN)
        client = get_stripe_client()
        signature = request.META.get("HTTP_STRIPE_SIGNATURE")
        if not signature:
            return Response(status=status.HTTP_400_BAD_REQUEST)
        try:
            event = client.construct_event(request.body, signature)
        except (ValueError, stripe.SignatureVerificationError):
            return Response(status=status.HTTP_400_BAD_REQUEST)

        event_type = event.get("type")
        data = event.get("data", {}).get("object", {})

        if event_type == "account.updated":
            update_payee_from_stripe(data)

        return Response({"received": True})
