from django.urls import path

from .views import PayeeAccountView, PayeeOnboardingView
from .webhook import StripeConnectWebhookView

urlpatterns = [
    path("payments/payee/", PayeeAccountView.as_view(), name="payee-account"),
    path("payments/payee/onboard/", PayeeOnboardingView.as_view(), name="payee-onboard"),
    path("payments/stripe/connect-webhook/", StripeConnectWebhookView.as_view(), name="stripe-connect-webhook"),
]
