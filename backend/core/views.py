import socket

from django.conf import settings
from django.db import DatabaseError, connection
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

REQUIRED_TABLES = {"projects", "logs", "metadata", "log_metadata", "traces", "spans"}


class HealthCheckView(APIView):
    def _schema_check(self) -> str:
        try:
            tables = set(connection.introspection.table_names())
        except DatabaseError:
            return "fail"
        return "ok" if REQUIRED_TABLES <= tables else "missing_tables"

    def _broker_check(self) -> str:
        # The broker only matters when clears are handed to Celery.
        if not settings.LOGS_CLEAR_ASYNC or not settings.REDIS_HOST:
            return "skipped"

        try:
            with socket.create_connection(
                (settings.REDIS_HOST, settings.REDIS_PORT),
                timeout=settings.HEALTHCHECK_TIMEOUT_SECONDS,
            ):
                return "ok"
        except OSError:
            return "fail"

    def get(self, request):  # noqa: ARG002
        checks = {
            "database": self._schema_check(),
            "broker": self._broker_check(),
        }
        is_healthy = checks["database"] == "ok" and checks["broker"] in {"ok", "skipped"}
        payload = {
            "status": "ok" if is_healthy else "degraded",
            "service": "onelogger",
            "checks": checks,
        }

        return Response(
            payload,
            status=status.HTTP_200_OK if is_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )
