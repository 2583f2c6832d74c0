from __future__ import annotations

from rest_framework import permissions, status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .feature_flag import payments_enabled
from .serializers import OnboardingSerializer, PayeeAccountSerializer
from .services import disconnect_payee, get_payee_account, start_onboarding


class PayeeAccountView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request: Request) -> Response:
        account = get_payee_account(request.user)
        if account is None:
            return Response({"provider": None, "payouts_enabled": False, "setup_complete": False})
        return Response(PayeeAccountSerializer(account).data)

    def delete(self, request: Request) -> Response:
        disconnect_payee(request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PayeeOnboardingView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request: Request) -> Response:
        if not payments_enabled():
            return Response({"detail": "Payments are disabled."}, status=status.HTTP_403_FORBIDDEN)
        serializer = OnboardingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        url = start_onboarding(
            request.user,
            refresh_url=serializer.validated_data["refresh_url"],
            return_url=serializer.validated_data["return_url"],
        )
        return Response({"url": url}, status=status.HTTP_201_CREATED)
