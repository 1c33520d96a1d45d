import json
import logging
from dataclasses import dataclass

from django.db import transaction
from django.db.models import Q

from core.timestamps import parse_timestamp_value, to_iso_timestamp
from projects.models import generate_id
from traces.models import Span, Trace

logger = logging.getLogger(__name__)

DEFAULT_TRACE_PAGE_SIZE = 50
DEFAULT_SPAN_LIMIT = 100


@dataclass(frozen=True)
class TraceCursor:
    id: str
    start_time: str

    def as_dict(self) -> dict:
        return {"id": self.id, "start_time": self.start_time}


def _duration_ms(start_time: str, end_time: str | None) -> float | None:
    if not end_time:
        return None
    start = parse_timestamp_value(start_time)
    end = parse_timestamp_value(end_time)
    return (end - start).total_seconds() * 1000


def _load_metadata(raw: str) -> dict:
    try:
        value = json.loads(raw or "{}")
    except ValueError:
        logger.warning("discarding unreadable trace metadata")
        return {}
    return value if isinstance(value, dict) else {}


def trace_to_dict(trace: Trace) -> dict:
    return {
        "id": trace.id,
        "project_id": trace.project_id,
        "name": trace.name,
        "start_time": trace.start_time,
        "end_time": trace.end_time,
        "duration": trace.duration,
        "status": trace.status,
        "metadata": _load_metadata(trace.metadata),
    }


def span_to_dict(span: Span) -> dict:
    return {
        "id": span.id,
        "trace_id": span.trace_id,
        "parent_span_id": span.parent_span_id,
        "name": span.name,
        "start_time": span.start_time,
        "end_time": span.end_time,
        "duration": span.duration,
        "status": span.status,
        "metadata": _load_metadata(span.metadata),
    }


def _timing(data: dict) -> tuple[str, str | None, float | None]:
    start_time = to_iso_timestamp(data["start_time"])
    end_time = to_iso_timestamp(data["end_time"]) if data.get("end_time") else None
    duration = data.get("duration")
    if duration is None:
        duration = _duration_ms(start_time, end_time)
    return start_time, end_time, duration


class TraceStore:
    """Persistence for traces and their spans.

    Span ids sent by clients are only meaningful inside one request, so each
    span gets a fresh id on insert and ``parent_span_id`` references are
    rewritten to match. Parents that are not part of the same request are
    kept as sent.
    """

    def create_trace(self, data: dict) -> dict:
        start_time, end_time, duration = _timing(data)
        trace = Trace(
            id=generate_id(),
            project_id=data["project_id"],
            name=data["name"],
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            status=data.get("status") or "running",
            metadata=json.dumps(data.get("metadata") or {}),
        )
        with transaction.atomic():
            trace.save(force_insert=True)
            spans = self._create_spans(trace.id, data.get("spans") or [])

        return {**trace_to_dict(trace), "spans": spans}

    def create_bulk_traces(self, items: list[dict]) -> list[dict]:
        if not items:
            raise ValueError("No trace data provided.")
        with transaction.atomic():
            created = [self.create_trace(item) for item in items]
        logger.info("created %s traces", len(created))
        return created

    def _create_spans(self, trace_id: str, items: list[dict]) -> list[dict]:
        id_map = {item["id"]: generate_id() for item in items if item.get("id")}
        created = []
        for item in items:
            parent = item.get("parent_span_id")
            created.append(
                self._insert_span(
                    {**item, "parent_span_id": id_map.get(parent, parent)},
                    trace_id,
                    id_map.get(item.get("id")) or generate_id(),
                )
            )
        return created

    def _insert_span(self, data: dict, trace_id: str, span_id: str) -> dict:
        start_time, end_time, duration = _timing(data)
        span = Span(
            id=span_id,
            trace_id=trace_id,
            parent_span_id=data.get("parent_span_id") or None,
            name=data["name"],
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            status=data.get("status") or "running",
            metadata=json.dumps(data.get("metadata") or {}),
        )
        span.save(force_insert=True)
        return span_to_dict(span)

    def create_span(self, trace_id: str, data: dict) -> dict | None:
        if not Trace.objects.filter(id=trace_id).exists():
            return None
        return self._insert_span(data, trace_id, generate_id())

    def get_trace_by_id(self, trace_id: str) -> dict | None:
        trace = Trace.objects.filter(id=trace_id).first()
        return trace_to_dict(trace) if trace else None

    def get_traces_by_project_id(
        self,
        project_id: str,
        limit: int = DEFAULT_TRACE_PAGE_SIZE,
        sort_direction: str = "desc",
        cursor: TraceCursor | None = None,
    ) -> dict:
        queryset = Trace.objects.filter(project_id=project_id)
        if cursor is not None:
            if sort_direction == "desc":
                queryset = queryset.filter(
                    Q(start_time__lt=cursor.start_time)
                    | Q(start_time=cursor.start_time, id__lt=cursor.id)
                )
            else:
                queryset = queryset.filter(
                    Q(start_time__gt=cursor.start_time)
                    | Q(start_time=cursor.start_time, id__gt=cursor.id)
                )
        ordering = ("-start_time", "-id") if sort_direction == "desc" else ("start_time", "id")
        rows = list(queryset.order_by(*ordering)[: limit + 1])

        has_next_page = len(rows) > limit
        rows = rows[:limit]
        next_cursor = None
        if has_next_page and rows:
            next_cursor = TraceCursor(id=rows[-1].id, start_time=rows[-1].start_time).as_dict()
        return {
            "traces": [trace_to_dict(trace) for trace in rows],
            "has_next_page": has_next_page,
            "next_cursor": next_cursor,
        }

    def get_spans_by_trace_id(
        self, trace_id: str, limit: int = DEFAULT_SPAN_LIMIT, sort_direction: str = "asc"
    ) -> list[dict]:
        ordering = ("start_time", "id") if sort_direction == "asc" else ("-start_time", "-id")
        rows = Span.objects.filter(trace_id=trace_id).order_by(*ordering)[:limit]
        return [span_to_dict(span) for span in rows]

    def get_trace_with_spans(self, trace_id: str) -> dict | None:
        trace = Trace.objects.filter(id=trace_id).first()
        if trace is None:
            return None
        spans = trace.spans.order_by("start_time", "id")
        return {"trace": trace_to_dict(trace), "spans": [span_to_dict(span) for span in spans]}

    def _apply_update(self, instance, data: dict) -> None:
        if data.get("end_time"):
            instance.end_time = to_iso_timestamp(data["end_time"])
        if data.get("duration") is not None:
            instance.duration = data["duration"]
        elif instance.end_time and instance.duration is None:
            instance.duration = _duration_ms(instance.start_time, instance.end_time)
        if data.get("status"):
            instance.status = data["status"]
        if data.get("metadata") is not None:
            instance.metadata = json.dumps(data["metadata"])
        instance.save(update_fields=["end_time", "duration", "status", "metadata"])

    def update_trace(self, trace_id: str, data: dict) -> dict | None:
        trace = Trace.objects.filter(id=trace_id).first()
        if trace is None:
            return None
        self._apply_update(trace, data)
        return trace_to_dict(trace)

    def update_span(self, span_id: str, data: dict) -> dict | None:
        span = Span.objects.filter(id=span_id).first()
        if span is None:
            return None
        self._apply_update(span, data)
        return span_to_dict(span)

    def clear_project_traces(self, project_id: str) -> dict:
        with transaction.atomic():
            deleted_spans, _ = Span.objects.filter(trace__project_id=project_id).delete()
            deleted_traces, _ = Trace.objects.filter(project_id=project_id).delete()
        logger.info(
            "cleared project traces project_id=%s traces=%s spans=%s",
            project_id,
            deleted_traces,
            deleted_spans,
        )
        return {"project_id": project_id, "deleted_traces": deleted_traces, "deleted_spans": deleted_spans}
