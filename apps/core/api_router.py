from django.urls import include, path

from .views import HealthView

urlpatterns = [
    path("health/", HealthView.as_view(), name="health"),
    path("auth/", include("apps.users.urls")),
    path("", include("apps.payments.urls")),
    path("", include("apps.payables.urls")),
]
