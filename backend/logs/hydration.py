import json
from collections import defaultdict
from typing import Iterable

from logs.models import Log, LogMetadata


def parse_embedded_metadata(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    if not isinstance(parsed, dict):
        return {}
    return {str(key): value if isinstance(value, str) else json.dumps(value) for key, value in parsed.items()}


def merge_metadata(tracked: Iterable[tuple[str, str]], embedded: dict[str, str]) -> list[dict]:
    """Tracked pairs first, in the order given, then embedded ones; repeated pairs are dropped."""
    merged = []
    seen = set()
    for pair in [*tracked, *embedded.items()]:
        if pair in seen:
            continue
        seen.add(pair)
        merged.append({"key": pair[0], "value": pair[1]})
    return merged


def tracked_pairs_for(log_ids: list[str]) -> dict[str, list[tuple[str, str]]]:
    pairs = defaultdict(list)
    rows = (
        LogMetadata.objects.filter(log_id__in=log_ids)
        .order_by("metadata__key", "metadata__value")
        .values_list("log_id", "metadata__key", "metadata__value")
    )
    for log_id, key, value in rows:
        pairs[log_id].append((key, value))
    return pairs


def serialize_log(log: Log, metadata: list[dict]) -> dict:
    return {
        "id": log.id,
        "project_id": log.project_id,
        "level": log.level,
        "message": log.message,
        "timestamp": log.timestamp,
        "metadata": metadata,
    }


def hydrate_logs(log_ids: list[str]) -> list[dict]:
    """Load full entries for ``log_ids``, preserving the given order."""
    if not log_ids:
        return []
    logs_by_id = {log.id: log for log in Log.objects.filter(id__in=log_ids)}
    tracked = tracked_pairs_for(log_ids)
    entries = []
    for log_id in log_ids:
        log = logs_by_id.get(log_id)
        if log is None:
            continue
        metadata = merge_metadata(tracked.get(log_id, []), parse_embedded_metadata(log.embedded_metadata))
        entries.append(serialize_log(log, metadata))
    return entries
