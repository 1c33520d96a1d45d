from dataclasses import dataclass, field
from typing import Any

from django.conf import settings
from django.db.models import Exists, OuterRef, Q, Value
from django.db.models.functions import StrIndex
from django.db.models.lookups import GreaterThan

from core.timestamps import to_iso_timestamp
from logs.hydration import hydrate_logs
from logs.models import Log, LogMetadata

ALL_PROJECTS = "*"
SORT_DIRECTIONS = {"asc", "desc"}


@dataclass(frozen=True)
class LogCursor:
    id: str
    timestamp: str

    def as_dict(self) -> dict:
        return {"id": self.id, "timestamp": self.timestamp}


@dataclass(frozen=True)
class MetadataFilter:
    key: str
    value: str


@dataclass
class LogFilters:
    project_id: str | None = None
    levels: list[str] = field(default_factory=list)
    message_contains: str = ""
    from_date: Any = None
    to_date: Any = None
    metadata: list[MetadataFilter] = field(default_factory=list)
    limit: int | None = None
    cursor: LogCursor | None = None
    sort_direction: str = "desc"


# Each predicate narrows the distinct-log selection and renders itself once
# into something ``QuerySet.filter`` accepts.


@dataclass(frozen=True)
class ProjectPredicate:
    project_id: str

    def as_filter(self):
        return Q(project_id=self.project_id)

    def describe(self) -> tuple:
        return ("project", self.project_id)


@dataclass(frozen=True)
class LevelPredicate:
    levels: tuple[str, ...]

    def as_filter(self):
        if len(self.levels) == 1:
            return Q(level=self.levels[0])
        return Q(level__in=self.levels)

    def describe(self) -> tuple:
        return ("level", self.levels)


@dataclass(frozen=True)
class MessageContainsPredicate:
    text: str

    def as_filter(self):
        # LIKE ignores case on SQLite; STRPOS/INSTR do not.
        return GreaterThan(StrIndex("message", Value(self.text)), 0)

    def describe(self) -> tuple:
        return ("message_contains", self.text)


@dataclass(frozen=True)
class TimestampRangePredicate:
    start: str | None = None
    end: str | None = None

    def as_filter(self):
        condition = Q()
        if self.start is not None:
            condition &= Q(timestamp__gte=self.start)
        if self.end is not None:
            condition &= Q(timestamp__lte=self.end)
        return condition

    def describe(self) -> tuple:
        return ("timestamp_range", self.start, self.end)


@dataclass(frozen=True)
class MetadataEqualsPredicate:
    key: str
    value: str

    def as_filter(self):
        return Exists(
            LogMetadata.objects.filter(
                log_id=OuterRef("pk"),
                metadata__key=self.key,
                metadata__value=self.value,
            )
        )

    def describe(self) -> tuple:
        return ("metadata", self.key, self.value)


@dataclass(frozen=True)
class CursorPredicate:
    cursor: LogCursor
    sort_direction: str

    def as_filter(self):
        if self.sort_direction == "desc":
            return Q(timestamp__lt=self.cursor.timestamp) | Q(
                timestamp=self.cursor.timestamp, id__lt=self.cursor.id
            )
        return Q(timestamp__gt=self.cursor.timestamp) | Q(
            timestamp=self.cursor.timestamp, id__gt=self.cursor.id
        )

    def describe(self) -> tuple:
        return ("cursor", self.sort_direction, self.cursor.timestamp, self.cursor.id)


def build_predicates(filters: LogFilters) -> list:
    if filters.sort_direction not in SORT_DIRECTIONS:
        raise ValueError(f"Unsupported sort direction '{filters.sort_direction}'.")

    predicates: list = []
    if filters.project_id and filters.project_id != ALL_PROJECTS:
        predicates.append(ProjectPredicate(filters.project_id))
    if filters.levels:
        predicates.append(LevelPredicate(tuple(filters.levels)))
    if filters.message_contains:
        predicates.append(MessageContainsPredicate(filters.message_contains))
    if filters.from_date or filters.to_date:
        predicates.append(
            TimestampRangePredicate(
                start=to_iso_timestamp(filters.from_date) if filters.from_date else None,
                end=to_iso_timestamp(filters.to_date) if filters.to_date else None,
            )
        )
    for meta in filters.metadata:
        predicates.append(MetadataEqualsPredicate(meta.key, meta.value))
    if filters.cursor is not None:
        predicates.append(CursorPredicate(filters.cursor, filters.sort_direction))
    return predicates


class QueryEngine:
    """Filtered, cursor-paginated reads over stored logs.

    Pages are resolved in two phases. The first selects at most ``limit + 1``
    distinct log ids ordered by ``(timestamp, id)``; metadata filters are
    ``EXISTS`` subqueries so the bridge table never multiplies rows. The
    second phase hydrates metadata for exactly the ids on the page.
    """

    def _page_size(self, filters: LogFilters) -> int:
        limit = filters.limit or settings.LOGS_DEFAULT_PAGE_SIZE
        if limit < 1:
            raise ValueError("limit must be a positive integer.")
        return limit

    def select_page_ids(self, filters: LogFilters) -> list[tuple[str, str]]:
        page_size = self._page_size(filters)
        predicates = build_predicates(filters)
        ordering = ["timestamp", "id"] if filters.sort_direction == "asc" else ["-timestamp", "-id"]
        queryset = Log.objects.filter(*[predicate.as_filter() for predicate in predicates])
        return list(
            queryset.order_by(*ordering).values_list("id", "timestamp").distinct()[: page_size + 1]
        )

    def get_logs_with_filters(self, filters: LogFilters) -> dict:
        page_size = self._page_size(filters)
        rows = self.select_page_ids(filters)
        has_next_page = len(rows) > page_size
        rows = rows[:page_size]

        logs = hydrate_logs([log_id for log_id, _ in rows])
        next_cursor = None
        if has_next_page and rows:
            last_id, last_timestamp = rows[-1]
            next_cursor = LogCursor(id=last_id, timestamp=last_timestamp).as_dict()

        return {
            "logs": logs,
            "has_next_page": has_next_page,
            "next_cursor": next_cursor,
        }

    def get_logs_by_project_id(self, project_id: str) -> list[dict]:
        return self.get_logs_with_filters(LogFilters(project_id=project_id))["logs"]

    def get_all_logs(self) -> list[dict]:
        return self.get_logs_with_filters(LogFilters(project_id=ALL_PROJECTS))["logs"]
