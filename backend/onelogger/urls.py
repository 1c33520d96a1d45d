from django.contrib import admin
from django.urls import include, path

from core.views import HealthCheckView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("healthz", HealthCheckView.as_view(), name="healthz"),
    path("api/", include("projects.urls")),
    path("api/", include("logs.urls")),
    path("api/", include("traces.urls")),
]
