import logging

from django.conf import settings
from django.db import transaction
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from logs.metrics import get_historical_log_counts, get_project_metrics
from logs.query import QueryEngine
from logs.serializers import (
    LogCreateSerializer,
    LogEntrySerializer,
    LogFiltersSerializer,
    ProjectConfigSerializer,
)
from logs.store import LogStore
from logs.tasks import clear_project_logs_task
from projects.config import parse_project_config, update_project_config
from projects.views import ensure_projects_exist, get_project

DEFAULT_HISTORY_DAYS = 7
logger = logging.getLogger(__name__)


class LogListCreateView(APIView):
    def get(self, request):
        serializer = LogFiltersSerializer.from_query_params(request.query_params)
        serializer.is_valid(raise_exception=True)
        try:
            page = QueryEngine().get_logs_with_filters(serializer.to_filters())
        except ValueError as error:
            raise ValidationError({"detail": str(error)}) from error

        payload = {
            "logs": LogEntrySerializer(page["logs"], many=True).data,
            "has_next_page": page["has_next_page"],
            "next_cursor": page["next_cursor"],
        }
        return Response(payload, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = LogCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ensure_projects_exist({serializer.validated_data["project_id"]})

        log = LogStore().create_log(serializer.validated_data)
        return Response(LogEntrySerializer(log).data, status=status.HTTP_201_CREATED)


class LogBulkCreateView(APIView):
    def post(self, request):
        items = request.data.get("logs") if isinstance(request.data, dict) else request.data
        if not isinstance(items, list) or not items:
            raise ValidationError({"logs": "A non-empty list of logs is required."})
        if len(items) > settings.LOGS_BULK_MAX_ITEMS:
            raise ValidationError(
                {"logs": f"At most {settings.LOGS_BULK_MAX_ITEMS} logs can be created per request."}
            )

        serializer = LogCreateSerializer(data=items, many=True)
        serializer.is_valid(raise_exception=True)
        ensure_projects_exist({item["project_id"] for item in serializer.validated_data})

        created = LogStore().create_bulk_log(serializer.validated_data)
        payload = {
            "count": len(created),
            "logs": LogEntrySerializer(created, many=True).data,
        }
        return Response(payload, status=status.HTTP_201_CREATED)


class LogDetailView(APIView):
    def get(self, request, log_id: str):  # noqa: ARG002
        log = LogStore().get_log_by_id(log_id)
        if log is None:
            raise NotFound("Log not found.")
        return Response(LogEntrySerializer(log).data, status=status.HTTP_200_OK)


class ProjectMetricsView(APIView):
    def get(self, request, project_id: str):  # noqa: ARG002
        get_project(project_id)
        return Response(get_project_metrics(project_id), status=status.HTTP_200_OK)


class ProjectHistoricalLogCountsView(APIView):
    def get(self, request, project_id: str):
        get_project(project_id)
        days_param = request.query_params.get("days", "").strip()
        if days_param:
            try:
                days = int(days_param)
            except ValueError as error:
                raise ValidationError({"days": "days must be an integer."}) from error
        else:
            days = DEFAULT_HISTORY_DAYS

        if days < 1 or days > settings.LOGS_HISTORY_MAX_DAYS:
            raise ValidationError(
                {"days": f"days must be between 1 and {settings.LOGS_HISTORY_MAX_DAYS}."}
            )
        return Response(get_historical_log_counts(project_id, days), status=status.HTTP_200_OK)


class ProjectMetadataKeysView(APIView):
    def get(self, request, project_id: str):  # noqa: ARG002
        get_project(project_id)
        keys = LogStore().get_unique_metadata_keys_by_project_id(project_id)
        return Response(keys, status=status.HTTP_200_OK)


class MetadataKeysView(APIView):
    def get(self, request):  # noqa: ARG002
        return Response(LogStore().get_metadata_keys(), status=status.HTTP_200_OK)


class ProjectConfigView(APIView):
    def get(self, request, project_id: str):  # noqa: ARG002
        project = get_project(project_id)
        return Response(parse_project_config(project.config), status=status.HTTP_200_OK)

    def put(self, request, project_id: str):
        project = get_project(project_id)
        if not isinstance(request.data, dict):
            raise ValidationError({"detail": "Project config must be a JSON object."})
        serializer = ProjectConfigSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        config = {**request.data, **serializer.validated_data}
        update_project_config(project, config)
        return Response(config, status=status.HTTP_200_OK)


class ProjectLogsClearView(APIView):
    def delete(self, request, project_id: str):  # noqa: ARG002
        get_project(project_id)
        if not settings.LOGS_CLEAR_ASYNC:
            result = LogStore().clear_project_logs(project_id)
            return Response(result, status=status.HTTP_200_OK)

        def enqueue_clear_task():
            try:
                clear_project_logs_task.delay(project_id)
            except Exception:
                logger.exception("failed to enqueue clear task project_id=%s", project_id)

        transaction.on_commit(enqueue_clear_task)
        return Response(
            {"project_id": project_id, "status": "queued"},
            status=status.HTTP_202_ACCEPTED,
        )
