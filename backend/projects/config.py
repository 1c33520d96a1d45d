import json
import logging

from projects.models import Project

logger = logging.getLogger(__name__)

TRACKED_METADATA_KEYS = "trackedMetadataKeys"


def parse_project_config(raw_config: str | None) -> dict:
    if not raw_config:
        return {}
    try:
        parsed = json.loads(raw_config)
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def tracked_keys_from_config(raw_config: str | None) -> set[str]:
    keys = parse_project_config(raw_config).get(TRACKED_METADATA_KEYS)
    if not isinstance(keys, list):
        return set()
    return {key for key in keys if isinstance(key, str)}


def get_tracked_metadata_keys(project_id: str) -> set[str]:
    raw_config = (
        Project.objects.filter(id=project_id).values_list("config", flat=True).first()
    )
    if raw_config is None:
        logger.debug("tracked keys requested for unknown project_id=%s", project_id)
        return set()
    return tracked_keys_from_config(raw_config)


def update_project_config(project: Project, config: dict) -> Project:
    project.config = json.dumps(config)
    project.save(update_fields=["config"])
    return project
