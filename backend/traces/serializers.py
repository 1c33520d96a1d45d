import json

from django.conf import settings
from rest_framework import serializers

from core.timestamps import format_iso_timestamp, parse_timestamp_value
from traces.models import TRACE_STATUSES
from traces.store import TraceCursor


class TimestampField(serializers.CharField):
    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        parsed = parse_timestamp_value(value)
        if parsed is None:
            raise serializers.ValidationError("must be an ISO-8601 date-time string.")
        return format_iso_timestamp(parsed)


class SpanCreateSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, max_length=64)
    parent_span_id = serializers.CharField(required=False, allow_null=True, default=None, max_length=64)
    name = serializers.CharField()
    start_time = TimestampField()
    end_time = TimestampField(required=False, allow_null=True, default=None)
    duration = serializers.FloatField(required=False, allow_null=True, default=None, min_value=0)
    status = serializers.ChoiceField(choices=TRACE_STATUSES, required=False, default="running")
    metadata = serializers.DictField(required=False, default=dict)


class TraceCreateSerializer(serializers.Serializer):
    project_id = serializers.CharField(max_length=36)
    name = serializers.CharField()
    start_time = TimestampField()
    end_time = TimestampField(required=False, allow_null=True, default=None)
    duration = serializers.FloatField(required=False, allow_null=True, default=None, min_value=0)
    status = serializers.ChoiceField(choices=TRACE_STATUSES, required=False, default="running")
    metadata = serializers.DictField(required=False, default=dict)
    spans = SpanCreateSerializer(many=True, required=False, default=list)


class TraceUpdateSerializer(serializers.Serializer):
    end_time = TimestampField(required=False, allow_null=True, default=None)
    duration = serializers.FloatField(required=False, allow_null=True, default=None, min_value=0)
    status = serializers.ChoiceField(choices=TRACE_STATUSES, required=False, default=None, allow_null=True)
    metadata = serializers.DictField(required=False, default=None, allow_null=True)


class TraceListSerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, default=None, allow_null=True, min_value=1)
    sort_direction = serializers.ChoiceField(choices=["asc", "desc"], required=False, default="desc")
    cursor = serializers.CharField(required=False, default=None, allow_null=True)

    def validate_limit(self, value):
        if value is None:
            return settings.LOGS_DEFAULT_PAGE_SIZE
        if value > settings.LOGS_MAX_PAGE_SIZE:
            raise serializers.ValidationError(f"limit must be between 1 and {settings.LOGS_MAX_PAGE_SIZE}.")
        return value

    def validate_cursor(self, value):
        if not value:
            return None
        try:
            payload = json.loads(value)
        except ValueError as error:
            raise serializers.ValidationError("cursor must be a JSON object.") from error
        if (
            not isinstance(payload, dict)
            or not isinstance(payload.get("id"), str)
            or not isinstance(payload.get("start_time"), str)
        ):
            raise serializers.ValidationError("cursor must contain string id and start_time.")
        return TraceCursor(id=payload["id"], start_time=payload["start_time"])


class SpanListSerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, default=100, min_value=1, max_value=1000)
    sort_direction = serializers.ChoiceField(choices=["asc", "desc"], required=False, default="asc")
