import json

from django.conf import settings
from rest_framework import serializers

from core.timestamps import format_iso_timestamp, parse_timestamp_value
from logs.query import ALL_PROJECTS, LogCursor, LogFilters, MetadataFilter
from logs.store import MISSING_METADATA_VALUE


class LogMetadataEntrySerializer(serializers.Serializer):
    key = serializers.CharField(allow_blank=False, trim_whitespace=False)
    value = serializers.CharField(
        default=MISSING_METADATA_VALUE, allow_blank=True, trim_whitespace=False
    )


class LogCreateSerializer(serializers.Serializer):
    project_id = serializers.CharField(max_length=36)
    level = serializers.CharField(max_length=32)
    message = serializers.CharField(allow_blank=True, trim_whitespace=False)
    timestamp = serializers.CharField(max_length=64)
    metadata = LogMetadataEntrySerializer(many=True, required=False, default=list)

    def to_internal_value(self, data):
        # Accept the camelCase projectId emitted by JavaScript clients.
        if isinstance(data, dict) and "project_id" not in data and "projectId" in data:
            data = {**data, "project_id": data["projectId"]}
        return super().to_internal_value(data)

    def validate_timestamp(self, value: str):
        parsed = parse_timestamp_value(value)
        if parsed is None:
            raise serializers.ValidationError("timestamp must be an ISO-8601 date-time string.")
        return format_iso_timestamp(parsed)


class LogEntrySerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    project_id = serializers.CharField(read_only=True)
    level = serializers.CharField(read_only=True)
    message = serializers.CharField(read_only=True)
    timestamp = serializers.CharField(read_only=True)
    metadata = LogMetadataEntrySerializer(many=True, read_only=True)


class LogFiltersSerializer(serializers.Serializer):
    project_id = serializers.CharField(required=False, default=ALL_PROJECTS)
    level = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    message_contains = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=300, trim_whitespace=False
    )
    from_date = serializers.CharField(required=False, default=None, allow_null=True)
    to_date = serializers.CharField(required=False, default=None, allow_null=True)
    metadata = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    limit = serializers.IntegerField(required=False, default=None, allow_null=True, min_value=1)
    cursor = serializers.CharField(required=False, default=None, allow_null=True)
    sort_direction = serializers.ChoiceField(choices=["asc", "desc"], required=False, default="desc")

    @classmethod
    def from_query_params(cls, query_params):
        data = {}
        for name in ["project_id", "message_contains", "from_date", "to_date", "limit", "cursor", "sort_direction"]:
            value = query_params.get(name)
            if value is not None and value != "":
                data[name] = value
        levels = []
        for raw in query_params.getlist("level"):
            levels.extend(part.strip() for part in raw.split(",") if part.strip())
        if levels:
            data["level"] = levels
        metadata = query_params.getlist("metadata")
        if metadata:
            data["metadata"] = metadata
        return cls(data=data)

    def validate_limit(self, value):
        if value is not None and value > settings.LOGS_MAX_PAGE_SIZE:
            raise serializers.ValidationError(
                f"limit must be between 1 and {settings.LOGS_MAX_PAGE_SIZE}."
            )
        return value

    def _validate_date(self, value):
        if value and parse_timestamp_value(value) is None:
            raise serializers.ValidationError("must be an ISO-8601 date or date-time.")
        return value

    def validate_from_date(self, value):
        return self._validate_date(value)

    def validate_to_date(self, value):
        return self._validate_date(value)

    def validate_metadata(self, value):
        parsed = []
        for item in value:
            key, separator, meta_value = item.partition(":")
            if not separator or not key:
                raise serializers.ValidationError("metadata filters must use the form key:value.")
            parsed.append(MetadataFilter(key=key, value=meta_value))
        return parsed

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
            or not isinstance(payload.get("timestamp"), str)
        ):
            raise serializers.ValidationError("cursor must contain string id and timestamp.")
        return LogCursor(id=payload["id"], timestamp=payload["timestamp"])

    def to_filters(self) -> LogFilters:
        data = self.validated_data
        return LogFilters(
            project_id=data["project_id"],
            levels=data["level"],
            message_contains=data["message_contains"],
            from_date=data["from_date"],
            to_date=data["to_date"],
            metadata=data["metadata"],
            limit=data["limit"],
            cursor=data["cursor"],
            sort_direction=data["sort_direction"],
        )


class ProjectConfigSerializer(serializers.Serializer):
    trackedMetadataKeys = serializers.ListField(
        child=serializers.CharField(max_length=255), required=False, default=list
    )
