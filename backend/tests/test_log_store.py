import json
from unittest import mock

import pytest

from logs.metadata import MetadataStore
from logs.models import Log, LogMetadata, Metadata
from logs.store import LogStore, partition_metadata


def _payload(project, message="checkout started", **meta):
    return {
        "project_id": project.id,
        "level": "info",
        "message": message,
        "timestamp": "2024-05-01T10:00:00.000Z",
        "metadata": [{"key": key, "value": value} for key, value in meta.items()],
    }


def test_partition_metadata_splits_and_keeps_last_embedded_value():
    tracked, embedded = partition_metadata(
        [
            {"key": "env", "value": "prod"},
            {"key": "userId", "value": "41"},
            {"key": "userId", "value": "42"},
            {"key": "attempt", "value": 3},
            {"key": "note", "value": None},
        ],
        {"env"},
    )

    assert tracked == [{"key": "env", "value": "prod"}]
    assert embedded == {"userId": "42", "attempt": "3", "note": "No value"}


@pytest.mark.django_db
class TestCreateLog:
    def test_tracked_keys_are_normalized_and_others_embedded(self, make_project, log_store):
        project = make_project("api", tracked_keys=["env"])

        created = log_store.create_log(_payload(project, env="prod", userId="42"))

        stored = Log.objects.get(id=created["id"])
        assert json.loads(stored.embedded_metadata) == {"userId": "42"}
        metadata = Metadata.objects.get(project=project)
        assert (metadata.key, metadata.value) == ("env", "prod")
        assert LogMetadata.objects.filter(log=stored, metadata=metadata).exists()
        assert created["metadata"] == [
            {"key": "env", "value": "prod"},
            {"key": "userId", "value": "42"},
        ]

    def test_repeated_tracked_pair_is_stored_once(self, project, log_store):
        log_store.create_log(_payload(project, env="prod"))
        log_store.create_log(_payload(project, env="prod"))

        assert Metadata.objects.filter(project=project).count() == 1
        assert LogMetadata.objects.count() == 2

    def test_unparseable_project_config_embeds_everything(self, make_project, log_store):
        project = make_project("broken", config="{not json")

        created = log_store.create_log(_payload(project, env="prod"))

        assert Metadata.objects.count() == 0
        assert json.loads(Log.objects.get(id=created["id"]).embedded_metadata) == {"env": "prod"}

    def test_metadata_failure_rolls_back_the_whole_log(self, project):
        store = LogStore()

        with mock.patch.object(MetadataStore, "get_or_create", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                store.create_log(_payload(project, env="prod"))

        assert Log.objects.count() == 0
        assert Metadata.objects.count() == 0
        assert LogMetadata.objects.count() == 0

    def test_bridge_failure_after_metadata_insert_rolls_back(self, project, log_store):
        with mock.patch.object(LogMetadata.objects, "create", side_effect=RuntimeError("constraint")):
            with pytest.raises(RuntimeError):
                log_store.create_log(_payload(project, env="prod"))

        assert Log.objects.count() == 0
        assert Metadata.objects.count() == 0


@pytest.mark.django_db
class TestCreateBulkLog:
    def test_creates_every_entry(self, project, log_store):
        created = log_store.create_bulk_log(
            [_payload(project, message=f"line {index}", env="prod") for index in range(3)]
        )

        assert [entry["message"] for entry in created] == ["line 0", "line 1", "line 2"]
        assert Log.objects.count() == 3
        assert Metadata.objects.count() == 1

    def test_failure_partway_commits_nothing(self, project, log_store):
        real_get_or_create = MetadataStore.get_or_create

        def fail_on_bad_value(self, project_id, key, value):
            if value == "boom":
                raise RuntimeError("metadata insert failed")
            return real_get_or_create(self, project_id, key, value)

        with mock.patch.object(MetadataStore, "get_or_create", fail_on_bad_value):
            with pytest.raises(RuntimeError):
                log_store.create_bulk_log(
                    [
                        _payload(project, message="ok", env="prod"),
                        _payload(project, message="bad", env="boom"),
                    ]
                )

        assert Log.objects.count() == 0
        assert Metadata.objects.count() == 0
        assert LogMetadata.objects.count() == 0

    def test_empty_list_is_rejected(self, log_store):
        with pytest.raises(ValueError):
            log_store.create_bulk_log([])


@pytest.mark.django_db
class TestReadAndClear:
    def test_get_log_by_id_merges_tracked_and_embedded(self, project, make_log, log_store):
        created = make_log(project, env="prod", userId="42")

        fetched = log_store.get_log_by_id(created["id"])

        assert fetched["id"] == created["id"]
        assert fetched["project_id"] == project.id
        assert fetched["metadata"] == [
            {"key": "env", "value": "prod"},
            {"key": "userId", "value": "42"},
        ]

    def test_get_log_by_id_missing_returns_none(self, db, log_store):
        assert log_store.get_log_by_id("does-not-exist") is None

    def test_corrupt_embedded_metadata_reads_as_empty(self, project, make_log, log_store):
        created = make_log(project, userId="42")
        Log.objects.filter(id=created["id"]).update(embedded_metadata="[oops")

        assert log_store.get_log_by_id(created["id"])["metadata"] == []

    def test_clear_project_logs_removes_logs_and_project_metadata(
        self, project, make_project, make_log, log_store
    ):
        other = make_project("billing", tracked_keys=["env"])
        make_log(project, env="prod")
        make_log(project, env="dev")
        kept = make_log(other, env="prod")

        result = log_store.clear_project_logs(project.id)

        assert result == {"project_id": project.id, "deleted_logs": 2, "deleted_metadata": 2}
        assert list(Log.objects.values_list("id", flat=True)) == [kept["id"]]
        assert Metadata.objects.filter(project=project).count() == 0
        assert Metadata.objects.filter(project=other).count() == 1
        assert LogMetadata.objects.count() == 1


@pytest.mark.django_db
class TestTimestampNormalization:
    @pytest.mark.parametrize(
        "raw",
        [
            "2024-05-01T10:00:00Z",
            "2024-05-01 10:00:00",
            "2024-05-01T12:00:00+02:00",
            "2024-05-01T10:00:00.000000+00:00",
        ],
    )
    def test_timestamps_are_stored_in_canonical_form(self, project, log_store, raw):
        payload = _payload(project)
        payload["timestamp"] = raw

        created = log_store.create_log(payload)

        assert created["timestamp"] == "2024-05-01T10:00:00.000Z"
        assert Log.objects.get(id=created["id"]).timestamp == "2024-05-01T10:00:00.000Z"

    def test_unparseable_timestamp_is_rejected(self, project, log_store):
        payload = _payload(project)
        payload["timestamp"] = "soon"

        with pytest.raises(ValueError):
            log_store.create_log(payload)

        assert Log.objects.count() == 0


@pytest.mark.django_db
def test_create_response_matches_stored_metadata_order(project, log_store):
    created = log_store.create_log(
        _payload(project, region="eu", userId="42", env="prod")
    )

    fetched = log_store.get_log_by_id(created["id"])

    assert created["metadata"] == fetched["metadata"] == [
        {"key": "env", "value": "prod"},
        {"key": "region", "value": "eu"},
        {"key": "userId", "value": "42"},
    ]
