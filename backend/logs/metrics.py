from datetime import datetime, time, timedelta, timezone

from django.db.models import Count, Q
from django.utils import timezone as django_timezone

from core.timestamps import format_iso_timestamp, parse_timestamp_value
from logs.models import Log

COUNTED_LEVELS = ("info", "warn", "error")


def _local_midnight_iso() -> str:
    now = django_timezone.localtime()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return format_iso_timestamp(midnight)


def get_project_metrics(project_id: str) -> dict:
    today_start = _local_midnight_iso()
    today = Q(timestamp__gte=today_start)

    counts = Log.objects.filter(project_id=project_id).aggregate(
        total_logs=Count("id"),
        todays_logs=Count("id", filter=today),
        total_info=Count("id", filter=Q(level="info")),
        todays_info=Count("id", filter=Q(level="info") & today),
        total_warn=Count("id", filter=Q(level="warn")),
        todays_warn=Count("id", filter=Q(level="warn") & today),
        total_errors=Count("id", filter=Q(level="error")),
        todays_errors=Count("id", filter=Q(level="error") & today),
    )
    last_activity = (
        Log.objects.filter(project_id=project_id)
        .order_by("-timestamp", "-id")
        .values("timestamp", "message", "level")
        .first()
    )

    return {
        **{name: int(value or 0) for name, value in counts.items()},
        "last_activity": last_activity,
    }


def get_historical_log_counts(project_id: str, days: int = 7) -> list[dict]:
    if days < 1:
        raise ValueError("days must be greater than or equal to 1.")

    today = django_timezone.now().astimezone(timezone.utc).date()
    start_day = today - timedelta(days=days - 1)
    start_iso = format_iso_timestamp(datetime.combine(start_day, time.min, tzinfo=timezone.utc))
    end_iso = format_iso_timestamp(datetime.combine(today, time.max, tzinfo=timezone.utc))

    buckets = {}
    for offset in range(days):
        day = (start_day + timedelta(days=offset)).isoformat()
        buckets[day] = {"date": day, "info": 0, "warn": 0, "error": 0, "total": 0}

    rows = Log.objects.filter(
        project_id=project_id,
        timestamp__gte=start_iso,
        timestamp__lte=end_iso,
    ).values_list("timestamp", "level")
    for raw_timestamp, level in rows:
        parsed = parse_timestamp_value(raw_timestamp)
        if parsed is None:
            continue
        bucket = buckets.get(parsed.astimezone(timezone.utc).date().isoformat())
        if bucket is None:
            continue
        bucket["total"] += 1
        if level in COUNTED_LEVELS:
            bucket[level] += 1

    return [buckets[day] for day in sorted(buckets)]
