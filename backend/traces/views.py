import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from projects.views import ensure_projects_exist, get_project
from traces.serializers import (
    SpanCreateSerializer,
    SpanListSerializer,
    TraceCreateSerializer,
    TraceListSerializer,
    TraceUpdateSerializer,
)
from traces.store import TraceStore

logger = logging.getLogger(__name__)


class TraceCreateView(APIView):
    def post(self, request):
        serializer = TraceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ensure_projects_exist({serializer.validated_data["project_id"]})
        trace = TraceStore().create_trace(serializer.validated_data)
        return Response(trace, status=status.HTTP_201_CREATED)


class TraceBulkCreateView(APIView):
    def post(self, request):
        items = request.data.get("traces") if isinstance(request.data, dict) else request.data
        if not isinstance(items, list) or not items:
            raise ValidationError({"traces": "A non-empty list of traces is required."})
        if len(items) > settings.LOGS_BULK_MAX_ITEMS:
            raise ValidationError(
                {"traces": f"At most {settings.LOGS_BULK_MAX_ITEMS} traces can be created per request."}
            )

        serializer = TraceCreateSerializer(data=items, many=True)
        serializer.is_valid(raise_exception=True)
        ensure_projects_exist({item["project_id"] for item in serializer.validated_data})

        created = TraceStore().create_bulk_traces(serializer.validated_data)
        return Response({"count": len(created), "traces": created}, status=status.HTTP_201_CREATED)


class TraceDetailView(APIView):
    def get(self, request, trace_id: str):  # noqa: ARG002
        trace = TraceStore().get_trace_by_id(trace_id)
        if trace is None:
            raise NotFound("Trace not found.")
        return Response(trace, status=status.HTTP_200_OK)

    def put(self, request, trace_id: str):
        serializer = TraceUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        trace = TraceStore().update_trace(trace_id, serializer.validated_data)
        if trace is None:
            raise NotFound("Trace not found.")
        return Response(trace, status=status.HTTP_200_OK)


class TraceCompleteView(APIView):
    def get(self, request, trace_id: str):  # noqa: ARG002
        result = TraceStore().get_trace_with_spans(trace_id)
        if result is None:
            raise NotFound("Trace not found.")
        return Response(result, status=status.HTTP_200_OK)


class TraceSpansView(APIView):
    def get(self, request, trace_id: str):
        serializer = SpanListSerializer(data=request.query_params.dict())
        serializer.is_valid(raise_exception=True)
        spans = TraceStore().get_spans_by_trace_id(
            trace_id,
            limit=serializer.validated_data["limit"],
            sort_direction=serializer.validated_data["sort_direction"],
        )
        return Response(spans, status=status.HTTP_200_OK)

    def post(self, request, trace_id: str):
        serializer = SpanCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        span = TraceStore().create_span(trace_id, serializer.validated_data)
        if span is None:
            raise NotFound("Trace not found.")
        return Response(span, status=status.HTTP_201_CREATED)


class SpanDetailView(APIView):
    def put(self, request, span_id: str):
        serializer = TraceUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        span = TraceStore().update_span(span_id, serializer.validated_data)
        if span is None:
            raise NotFound("Span not found.")
        return Response(span, status=status.HTTP_200_OK)


class ProjectTracesView(APIView):
    def get(self, request, project_id: str):
        get_project(project_id)
        serializer = TraceListSerializer(data=request.query_params.dict())
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        page = TraceStore().get_traces_by_project_id(
            project_id,
            limit=data["limit"] or settings.LOGS_DEFAULT_PAGE_SIZE,
            sort_direction=data["sort_direction"],
            cursor=data["cursor"],
        )
        return Response(page, status=status.HTTP_200_OK)

    def delete(self, request, project_id: str):  # noqa: ARG002
        get_project(project_id)
        return Response(TraceStore().clear_project_traces(project_id), status=status.HTTP_200_OK)
