import json
from datetime import datetime, timezone

import pytest

from logs.metadata import MetadataStore
from logs.models import Log, LogMetadata
from logs.query import (
    CursorPredicate,
    LevelPredicate,
    LogCursor,
    LogFilters,
    MessageContainsPredicate,
    MetadataEqualsPredicate,
    MetadataFilter,
    ProjectPredicate,
    QueryEngine,
    TimestampRangePredicate,
    build_predicates,
)


def _insert(project, log_id, timestamp, level="info", message="tick", embedded=None):
    return Log.objects.create(
        id=log_id,
        project=project,
        level=level,
        message=message,
        timestamp=timestamp,
        embedded_metadata=json.dumps(embedded or {}),
    )


def _collect_pages(engine, filters):
    seen = []
    pages = 0
    while True:
        page = engine.get_logs_with_filters(filters)
        pages += 1
        seen.extend(entry["id"] for entry in page["logs"])
        if not page["has_next_page"]:
            assert page["next_cursor"] is None
            return seen, pages
        filters.cursor = LogCursor(**page["next_cursor"])


@pytest.fixture
def tied_logs(project):
    # Several rows share a timestamp so ordering depends on the id tie-break.
    rows = [
        ("a", "2024-05-01T10:00:00.000Z"),
        ("b", "2024-05-01T10:00:00.000Z"),
        ("c", "2024-05-01T10:00:00.000Z"),
        ("d", "2024-05-01T11:00:00.000Z"),
        ("e", "2024-05-01T11:00:00.000Z"),
        ("f", "2024-05-01T12:00:00.000Z"),
        ("g", "2024-05-02T09:30:00.000Z"),
    ]
    for log_id, timestamp in rows:
        _insert(project, log_id, timestamp)
    return rows


@pytest.mark.django_db
class TestPagination:
    @pytest.mark.parametrize("limit", [1, 2, 3, 7, 50])
    def test_descending_pages_cover_every_log_once(self, project, tied_logs, limit):
        ids, pages = _collect_pages(QueryEngine(), LogFilters(project_id=project.id, limit=limit))

        assert ids == ["g", "f", "e", "d", "c", "b", "a"]
        assert pages == max(1, -(-len(tied_logs) // limit))

    @pytest.mark.parametrize("limit", [1, 3, 4])
    def test_ascending_pages_cover_every_log_once(self, project, tied_logs, limit):
        filters = LogFilters(project_id=project.id, limit=limit, sort_direction="asc")

        ids, _ = _collect_pages(QueryEngine(), filters)

        assert ids == ["a", "b", "c", "d", "e", "f", "g"]

    def test_exact_page_size_reports_no_next_page(self, project, tied_logs):
        page = QueryEngine().get_logs_with_filters(LogFilters(project_id=project.id, limit=len(tied_logs)))

        assert len(page["logs"]) == len(tied_logs)
        assert page["has_next_page"] is False
        assert page["next_cursor"] is None

    def test_next_cursor_points_at_last_row(self, project, tied_logs):
        page = QueryEngine().get_logs_with_filters(LogFilters(project_id=project.id, limit=3))

        assert page["has_next_page"] is True
        assert page["next_cursor"] == {"id": "e", "timestamp": "2024-05-01T11:00:00.000Z"}

    def test_insert_between_pages_does_not_repeat_rows(self, project, tied_logs):
        engine = QueryEngine()
        first = engine.get_logs_with_filters(LogFilters(project_id=project.id, limit=3))
        _insert(project, "z", "2024-05-03T00:00:00.000Z")

        rest, _ = _collect_pages(
            engine,
            LogFilters(project_id=project.id, limit=3, cursor=LogCursor(**first["next_cursor"])),
        )

        first_ids = [entry["id"] for entry in first["logs"]]
        assert first_ids == ["g", "f", "e"]
        assert rest == ["d", "c", "b", "a"]

    def test_empty_result(self, project):
        page = QueryEngine().get_logs_with_filters(LogFilters(project_id=project.id))

        assert page == {"logs": [], "has_next_page": False, "next_cursor": None}

    def test_default_limit_comes_from_settings(self, project, settings):
        settings.LOGS_DEFAULT_PAGE_SIZE = 2
        for index in range(3):
            _insert(project, f"log-{index}", f"2024-05-01T10:00:0{index}.000Z")

        page = QueryEngine().get_logs_with_filters(LogFilters(project_id=project.id))

        assert [entry["id"] for entry in page["logs"]] == ["log-2", "log-1"]
        assert page["has_next_page"] is True

    def test_invalid_sort_direction_raises(self, project):
        with pytest.raises(ValueError):
            QueryEngine().get_logs_with_filters(LogFilters(project_id=project.id, sort_direction="sideways"))


@pytest.mark.django_db
class TestFilters:
    def test_metadata_filters_require_every_pair(self, project, make_log):
        both = make_log(project, message="both", env="prod", region="eu")
        make_log(project, message="env only", env="prod", region="us")
        make_log(project, message="region only", env="dev", region="eu")

        page = QueryEngine().get_logs_with_filters(
            LogFilters(
                project_id=project.id,
                metadata=[MetadataFilter("env", "prod"), MetadataFilter("region", "eu")],
            )
        )

        assert [entry["id"] for entry in page["logs"]] == [both["id"]]

    def test_metadata_filter_ignores_embedded_values(self, project, make_log):
        make_log(project, userId="42")

        page = QueryEngine().get_logs_with_filters(
            LogFilters(project_id=project.id, metadata=[MetadataFilter("userId", "42")])
        )

        assert page["logs"] == []

    def test_levels_are_or_combined(self, project):
        _insert(project, "1", "2024-05-01T10:00:00.000Z", level="info")
        _insert(project, "2", "2024-05-01T10:00:01.000Z", level="warn")
        _insert(project, "3", "2024-05-01T10:00:02.000Z", level="error")

        page = QueryEngine().get_logs_with_filters(
            LogFilters(project_id=project.id, levels=["warn", "error"])
        )

        assert [entry["id"] for entry in page["logs"]] == ["3", "2"]

    def test_message_contains_is_case_sensitive(self, project):
        _insert(project, "1", "2024-05-01T10:00:00.000Z", message="Payment Failed for order")
        _insert(project, "2", "2024-05-01T10:00:01.000Z", message="payment failed again")

        page = QueryEngine().get_logs_with_filters(
            LogFilters(project_id=project.id, message_contains="Failed")
        )

        assert [entry["id"] for entry in page["logs"]] == ["1"]

    def test_date_range_is_inclusive(self, project):
        _insert(project, "before", "2024-04-30T23:59:59.999Z")
        _insert(project, "start", "2024-05-01T00:00:00.000Z")
        _insert(project, "middle", "2024-05-01T12:00:00.000Z")
        _insert(project, "end", "2024-05-02T00:00:00.000Z")
        _insert(project, "after", "2024-05-02T00:00:00.001Z")

        page = QueryEngine().get_logs_with_filters(
            LogFilters(
                project_id=project.id,
                from_date="2024-05-01",
                to_date=datetime(2024, 5, 2, tzinfo=timezone.utc),
                sort_direction="asc",
            )
        )

        assert [entry["id"] for entry in page["logs"]] == ["start", "middle", "end"]

    def test_wildcard_project_spans_all_projects(self, project, make_project):
        other = make_project("billing")
        _insert(project, "1", "2024-05-01T10:00:00.000Z")
        _insert(other, "2", "2024-05-01T10:00:01.000Z")

        engine = QueryEngine()

        assert [entry["id"] for entry in engine.get_all_logs()] == ["2", "1"]
        assert [entry["id"] for entry in engine.get_logs_by_project_id(project.id)] == ["1"]

    def test_hydrated_metadata_merges_without_duplicates(self, project):
        log = _insert(project, "1", "2024-05-01T10:00:00.000Z", embedded={"env": "prod", "userId": "7"})
        metadata_id = MetadataStore().get_or_create(project.id, "env", "prod")
        LogMetadata.objects.create(log=log, metadata_id=metadata_id)

        page = QueryEngine().get_logs_with_filters(LogFilters(project_id=project.id))

        assert page["logs"][0]["metadata"] == [
            {"key": "env", "value": "prod"},
            {"key": "userId", "value": "7"},
        ]

    def test_many_tracked_matches_do_not_shrink_the_page(self, project, make_log):
        for index in range(4):
            make_log(
                project,
                message=f"line {index}",
                timestamp=f"2024-05-01T10:00:0{index}.000Z",
                env="prod",
                region="eu",
            )

        page = QueryEngine().get_logs_with_filters(LogFilters(project_id=project.id, limit=3))

        assert len(page["logs"]) == 3
        assert page["has_next_page"] is True


def test_build_predicates_skips_unset_filters():
    assert build_predicates(LogFilters(project_id="*")) == []


def test_build_predicates_describe_every_filter():
    filters = LogFilters(
        project_id="p1",
        levels=["error"],
        message_contains="timeout",
        from_date="2024-05-01T00:00:00Z",
        metadata=[MetadataFilter("env", "prod")],
        cursor=LogCursor(id="abc", timestamp="2024-05-01T10:00:00.000Z"),
        sort_direction="asc",
    )

    predicates = build_predicates(filters)

    assert [type(predicate) for predicate in predicates] == [
        ProjectPredicate,
        LevelPredicate,
        MessageContainsPredicate,
        TimestampRangePredicate,
        MetadataEqualsPredicate,
        CursorPredicate,
    ]
    assert [predicate.describe() for predicate in predicates] == [
        ("project", "p1"),
        ("level", ("error",)),
        ("message_contains", "timeout"),
        ("timestamp_range", "2024-05-01T00:00:00.000Z", None),
        ("metadata", "env", "prod"),
        ("cursor", "asc", "2024-05-01T10:00:00.000Z", "abc"),
    ]
