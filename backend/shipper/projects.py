import logging
from urllib.parse import quote

from shipper.transports import TransportError, request_json

logger = logging.getLogger(__name__)


class DuplicateProjectError(TransportError):
    pass


class ProjectClient:
    """Blocking client for the server's project endpoints."""

    def __init__(self, base_url: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def get_by_name(self, name: str) -> dict | None:
        try:
            return request_json(
                self.base_url, "GET", f"/api/projects/by-name/{quote(name, safe='')}", timeout=self.timeout
            )
        except TransportError as error:
            if error.status_code == 404:
                return None
            raise

    def is_name_taken(self, name: str) -> bool:
        body = request_json(
            self.base_url,
            "GET",
            f"/api/projects/by-name/{quote(name, safe='')}/exists",
            timeout=self.timeout,
        )
        return bool(body and body.get("exists"))

    def create(self, name: str, description: str = "") -> dict:
        return request_json(
            self.base_url,
            "POST",
            "/api/projects",
            {"name": name, "description": description},
            timeout=self.timeout,
        )


def resolve_project(
    client: ProjectClient, name: str, description: str = "", fail_on_duplicate_name: bool = False
) -> dict:
    """Return the server project called ``name``, creating it when missing.

    With ``fail_on_duplicate_name`` an existing project is not reused and
    ``DuplicateProjectError`` is raised instead.
    """
    project = client.get_by_name(name)
    if project is None:
        try:
            project = client.create(name, description)
            logger.info("created project name=%s id=%s", name, project["id"])
            return project
        except TransportError as error:
            # Another client may have created it in between.
            if error.status_code != 400 or not client.is_name_taken(name):
                raise
            project = client.get_by_name(name)
            if project is None:
                raise

    if fail_on_duplicate_name:
        raise DuplicateProjectError(f'Project name "{name}" is already taken.')
    logger.info("using existing project name=%s id=%s", name, project["id"])
    return project
