from django.urls import path

from traces.views import (
    ProjectTracesView,
    SpanDetailView,
    TraceBulkCreateView,
    TraceCompleteView,
    TraceCreateView,
    TraceDetailView,
    TraceSpansView,
)

urlpatterns = [
    path("traces", TraceCreateView.as_view(), name="traces-create"),
    path("traces/bulk", TraceBulkCreateView.as_view(), name="traces-bulk-create"),
    path("traces/project/<str:project_id>", ProjectTracesView.as_view(), name="project-traces"),
    path("traces/spans/<str:span_id>", SpanDetailView.as_view(), name="spans-detail"),
    path("traces/<str:trace_id>", TraceDetailView.as_view(), name="traces-detail"),
    path("traces/<str:trace_id>/complete", TraceCompleteView.as_view(), name="traces-complete"),
    path("traces/<str:trace_id>/spans", TraceSpansView.as_view(), name="traces-spans"),
    path("projects/<str:project_id>/traces", ProjectTracesView.as_view(), name="project-traces-clear"),
]
