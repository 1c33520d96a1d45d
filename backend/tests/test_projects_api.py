import pytest

from logs.models import Log
from projects.models import Project


@pytest.mark.django_db
class TestProjectsApi:
    def test_create_project(self, client):
        response = client.post("/api/projects", {"name": "checkout", "description": "payments"}, format="json")

        assert response.status_code == 201
        body = response.json()
        assert (body["name"], body["description"]) == ("checkout", "payments")
        assert body["created_at"].endswith("Z")
        assert Project.objects.filter(id=body["id"]).exists()

    def test_duplicate_name_is_rejected(self, client, project):
        response = client.post("/api/projects", {"name": project.name}, format="json")

        assert response.status_code == 400
        assert "name" in response.json()
        assert Project.objects.count() == 1

    def test_blank_name_is_rejected(self, client, db):
        response = client.post("/api/projects", {"name": ""}, format="json")

        assert response.status_code == 400

    def test_list_projects_by_name(self, client, make_project):
        make_project("web")
        make_project("api")

        response = client.get("/api/projects")

        assert [item["name"] for item in response.json()] == ["api", "web"]

    def test_get_by_name(self, client, project):
        response = client.get(f"/api/projects/by-name/{project.name}")

        assert response.status_code == 200
        assert response.json()["id"] == project.id

    def test_get_by_name_not_found(self, client, db):
        assert client.get("/api/projects/by-name/missing").status_code == 404

    def test_name_with_spaces_is_resolved(self, client, make_project):
        make_project("web app")

        response = client.get("/api/projects/by-name/web%20app/exists")

        assert response.json() == {"exists": True}

    def test_exists(self, client, project):
        assert client.get(f"/api/projects/by-name/{project.name}/exists").json() == {"exists": True}
        assert client.get("/api/projects/by-name/other/exists").json() == {"exists": False}

    def test_detail_and_delete(self, client, project, make_log):
        make_log(project, env="prod")

        assert client.get(f"/api/projects/{project.id}").json()["name"] == project.name
        response = client.delete(f"/api/projects/{project.id}")

        assert response.status_code == 204
        assert not Project.objects.filter(id=project.id).exists()
        assert Log.objects.count() == 0

    def test_detail_not_found(self, client, db):
        assert client.get("/api/projects/missing").status_code == 404

    def test_nested_project_routes_still_resolve(self, client, project):
        response = client.get(f"/api/projects/{project.id}/config")

        assert response.status_code == 200
        assert response.json()["trackedMetadataKeys"] == ["env", "region"]
