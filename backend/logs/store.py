import json
import logging

from django.db import transaction

from core.timestamps import to_iso_timestamp
from logs.hydration import hydrate_logs, merge_metadata
from logs.metadata import MetadataStore
from logs.models import Log, LogMetadata, Metadata
from projects.config import get_tracked_metadata_keys
from projects.models import generate_id

logger = logging.getLogger(__name__)

MISSING_METADATA_VALUE = "No value"


def _metadata_value(value) -> str:
    if value is None:
        return MISSING_METADATA_VALUE
    if isinstance(value, str):
        return value
    return json.dumps(value)


def partition_metadata(
    entries: list[dict] | None, tracked_keys: set[str]
) -> tuple[list[dict], dict[str, str]]:
    """Split entries into tracked pairs and an embedded key->value map.

    Embedded keys keep the last value seen; tracked entries keep their order
    and duplicates.
    """
    tracked: list[dict] = []
    embedded: dict[str, str] = {}
    for entry in entries or []:
        key = str(entry["key"])
        value = _metadata_value(entry.get("value"))
        if key in tracked_keys:
            tracked.append({"key": key, "value": value})
        else:
            embedded[key] = value
    return tracked, embedded


class LogStore:
    def __init__(self, metadata_store: MetadataStore | None = None):
        self.metadata_store = metadata_store or MetadataStore()

    def create_log(self, data: dict) -> dict:
        project_id = data["project_id"]
        tracked_keys = get_tracked_metadata_keys(project_id)
        tracked, embedded = partition_metadata(data.get("metadata"), tracked_keys)

        log = Log(
            id=generate_id(),
            project_id=project_id,
            level=data["level"],
            message=data["message"],
            timestamp=to_iso_timestamp(data["timestamp"]),
            embedded_metadata=json.dumps(embedded),
        )
        with transaction.atomic():
            log.save(force_insert=True)
            for entry in tracked:
                metadata_id = self.metadata_store.get_or_create(project_id, entry["key"], entry["value"])
                LogMetadata.objects.create(log_id=log.id, metadata_id=metadata_id)

        return {
            "id": log.id,
            "project_id": log.project_id,
            "level": log.level,
            "message": log.message,
            "timestamp": log.timestamp,
            "metadata": merge_metadata(
                sorted((entry["key"], entry["value"]) for entry in tracked), embedded
            ),
        }

    def create_bulk_log(self, items: list[dict]) -> list[dict]:
        if not items:
            raise ValueError("No log data provided.")

        with transaction.atomic():
            created = [self.create_log(item) for item in items]
        logger.info("bulk log insert completed count=%s", len(created))
        return created

    def get_log_by_id(self, log_id: str) -> dict | None:
        entries = hydrate_logs([log_id])
        return entries[0] if entries else None

    def clear_project_logs(self, project_id: str) -> dict:
        with transaction.atomic():
            _, deleted_logs_by_model = Log.objects.filter(project_id=project_id).delete()
            _, deleted_metadata_by_model = Metadata.objects.filter(project_id=project_id).delete()
        deleted_logs = deleted_logs_by_model.get(Log._meta.label, 0)
        deleted_metadata = deleted_metadata_by_model.get(Metadata._meta.label, 0)

        logger.info(
            "cleared project logs project_id=%s logs=%s metadata_rows=%s",
            project_id,
            deleted_logs,
            deleted_metadata,
        )
        return {
            "project_id": project_id,
            "deleted_logs": deleted_logs,
            "deleted_metadata": deleted_metadata,
        }

    def get_unique_metadata_keys_by_project_id(self, project_id: str) -> list[str]:
        return self.metadata_store.unique_keys_for_project(project_id)

    def get_metadata_keys(self) -> list[str]:
        return self.metadata_store.unique_keys()
