from datetime import timedelta

import pytest
from django.utils import timezone

from core.timestamps import format_iso_timestamp
from logs.metrics import get_historical_log_counts, get_project_metrics


def _iso(delta=timedelta(0)):
    return format_iso_timestamp(timezone.now() - delta)


@pytest.mark.django_db
class TestProjectMetrics:
    def test_counts_split_by_level_and_day(self, project, make_log):
        make_log(project, level="info", timestamp=_iso())
        make_log(project, level="warn", timestamp=_iso())
        make_log(project, level="error", timestamp="2020-01-01T08:00:00.000Z")
        make_log(project, level="info", timestamp="2020-01-02T08:00:00.000Z")
        make_log(project, level="debug", timestamp=_iso())

        metrics = get_project_metrics(project.id)

        assert metrics["total_logs"] == 5
        assert metrics["todays_logs"] == 3
        assert (metrics["total_info"], metrics["todays_info"]) == (2, 1)
        assert (metrics["total_warn"], metrics["todays_warn"]) == (1, 1)
        assert (metrics["total_errors"], metrics["todays_errors"]) == (1, 0)

    def test_last_activity_is_most_recent_log(self, project, make_log):
        make_log(project, message="older", timestamp="2024-05-01T10:00:00.000Z")
        make_log(project, message="newest", level="error", timestamp="2024-05-02T10:00:00.000Z")

        metrics = get_project_metrics(project.id)

        assert metrics["last_activity"] == {
            "timestamp": "2024-05-02T10:00:00.000Z",
            "message": "newest",
            "level": "error",
        }

    def test_project_without_logs(self, project, make_project, make_log):
        make_log(make_project("other"), timestamp=_iso())

        metrics = get_project_metrics(project.id)

        assert metrics["total_logs"] == 0
        assert metrics["todays_logs"] == 0
        assert metrics["last_activity"] is None


@pytest.mark.django_db
class TestHistoricalLogCounts:
    def test_buckets_are_zero_filled_oldest_first(self, project, make_log):
        make_log(project, level="error", timestamp=_iso())
        make_log(project, level="info", timestamp=_iso())
        make_log(project, level="warn", timestamp=_iso(timedelta(days=2)))
        make_log(project, level="info", timestamp=_iso(timedelta(days=30)))

        counts = get_historical_log_counts(project.id, days=3)

        today = timezone.now().date()
        assert [bucket["date"] for bucket in counts] == [
            (today - timedelta(days=2)).isoformat(),
            (today - timedelta(days=1)).isoformat(),
            today.isoformat(),
        ]
        assert counts[0] == {"date": counts[0]["date"], "info": 0, "warn": 1, "error": 0, "total": 1}
        assert counts[1] == {"date": counts[1]["date"], "info": 0, "warn": 0, "error": 0, "total": 0}
        assert counts[2] == {"date": counts[2]["date"], "info": 1, "warn": 0, "error": 1, "total": 2}

    def test_default_window_is_seven_days(self, project):
        counts = get_historical_log_counts(project.id)

        assert len(counts) == 7
        assert all(bucket["total"] == 0 for bucket in counts)

    def test_non_counted_levels_only_reach_total(self, project, make_log):
        make_log(project, level="debug", timestamp=_iso())

        today = get_historical_log_counts(project.id, days=1)[0]

        assert (today["info"], today["warn"], today["error"], today["total"]) == (0, 0, 0, 1)

    @pytest.mark.parametrize("days", [0, -3])
    def test_days_must_be_positive(self, project, days):
        with pytest.raises(ValueError):
            get_historical_log_counts(project.id, days=days)
