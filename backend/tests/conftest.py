import json

import pytest
from rest_framework.test import APIClient

from logs.store import LogStore
from projects.models import Project


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def make_project(db):
    def _make_project(name: str = "checkout", tracked_keys=None, config: str | None = None):
        if config is None:
            config = json.dumps({"trackedMetadataKeys": list(tracked_keys or [])})
        return Project.objects.create(name=name, description=f"{name} service", config=config)

    return _make_project


@pytest.fixture
def project(make_project):
    return make_project("checkout", tracked_keys=["env", "region"])


@pytest.fixture
def log_store():
    return LogStore()


@pytest.fixture
def make_log(log_store):
    def _make_log(project, message="request handled", level="info", timestamp="2024-05-01T10:00:00.000Z", **meta):
        return log_store.create_log(
            {
                "project_id": project.id,
                "level": level,
                "message": message,
                "timestamp": timestamp,
                "metadata": [{"key": key, "value": value} for key, value in meta.items()],
            }
        )

    return _make_log
