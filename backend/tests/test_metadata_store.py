from unittest import mock

import pytest

from logs.metadata import MetadataStore
from logs.models import LogMetadata, Metadata


@pytest.mark.django_db
class TestMetadataStore:
    def test_returns_same_id_for_same_triple(self, project):
        store = MetadataStore()

        first = store.get_or_create(project.id, "env", "prod")
        second = store.get_or_create(project.id, "env", "prod")

        assert first == second
        assert Metadata.objects.filter(project=project).count() == 1

    def test_distinct_values_and_projects_get_distinct_rows(self, project, make_project):
        other = make_project("billing")
        store = MetadataStore()

        ids = {
            store.get_or_create(project.id, "env", "prod"),
            store.get_or_create(project.id, "env", "staging"),
            store.get_or_create(other.id, "env", "prod"),
        }

        assert len(ids) == 3

    def test_lost_insert_race_rereads_winner(self, project):
        winner = Metadata.objects.create(project=project, key="env", value="prod")
        store = MetadataStore()
        real_find = store._find
        calls = []

        def find_missing_once(*args):
            calls.append(args)
            if len(calls) == 1:
                return None
            return real_find(*args)

        with mock.patch.object(store, "_find", side_effect=find_missing_once):
            metadata_id = store.get_or_create(project.id, "env", "prod")

        assert metadata_id == winner.id
        assert len(calls) == 2
        assert Metadata.objects.filter(project=project, key="env").count() == 1

    def test_keys_are_listed_per_project_and_globally(self, project, make_project, make_log):
        other = make_project("billing", tracked_keys=["tenant"])
        make_log(project, env="prod", region="eu")
        make_log(project, env="dev")
        make_log(other, tenant="acme", user="u-1")

        store = MetadataStore()

        assert store.unique_keys_for_project(project.id) == ["env", "region"]
        assert store.unique_keys_for_project(other.id) == ["tenant"]
        assert store.unique_keys() == ["env", "region", "tenant"]
        assert LogMetadata.objects.count() == 4
