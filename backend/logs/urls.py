from django.urls import path

from logs.views import (
    LogBulkCreateView,
    LogDetailView,
    LogListCreateView,
    MetadataKeysView,
    ProjectConfigView,
    ProjectHistoricalLogCountsView,
    ProjectLogsClearView,
    ProjectMetadataKeysView,
    ProjectMetricsView,
)

urlpatterns = [
    path("logs", LogListCreateView.as_view(), name="logs-list-create"),
    path("logs/bulk", LogBulkCreateView.as_view(), name="logs-bulk-create"),
    path("logs/<str:log_id>", LogDetailView.as_view(), name="logs-detail"),
    path("projects/<str:project_id>/metrics", ProjectMetricsView.as_view(), name="project-metrics"),
    path(
        "projects/<str:project_id>/logs",
        ProjectLogsClearView.as_view(),
        name="project-logs-clear",
    ),
    path(
        "projects/<str:project_id>/logs/historical-counts",
        ProjectHistoricalLogCountsView.as_view(),
        name="project-historical-counts",
    ),
    path(
        "projects/<str:project_id>/metadata-keys",
        ProjectMetadataKeysView.as_view(),
        name="project-metadata-keys",
    ),
    path("projects/<str:project_id>/config", ProjectConfigView.as_view(), name="project-config"),
    path("metadata/keys", MetadataKeysView.as_view(), name="metadata-keys"),
]
