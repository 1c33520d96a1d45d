import logging

from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from projects.models import Project
from projects.serializers import ProjectSerializer

logger = logging.getLogger(__name__)


def get_project(project_id: str) -> Project:
    project = Project.objects.filter(id=project_id).first()
    if project is None:
        raise NotFound("Project not found.")
    return project


def ensure_projects_exist(project_ids: set[str]) -> None:
    found = set(Project.objects.filter(id__in=project_ids).values_list("id", flat=True))
    missing = sorted(project_ids - found)
    if missing:
        raise ValidationError({"project_id": f"Unknown project id(s): {', '.join(missing)}."})


class ProjectListCreateView(APIView):
    def get(self, request):  # noqa: ARG002
        projects = Project.objects.order_by("name")
        return Response(ProjectSerializer(projects, many=True).data, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = ProjectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = serializer.save()
        logger.info("created project id=%s name=%s", project.id, project.name)
        return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)


class ProjectDetailView(APIView):
    def get(self, request, project_id: str):  # noqa: ARG002
        return Response(ProjectSerializer(get_project(project_id)).data, status=status.HTTP_200_OK)

    def delete(self, request, project_id: str):  # noqa: ARG002
        project = get_project(project_id)
        project.delete()
        logger.info("deleted project id=%s", project_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProjectByNameView(APIView):
    def get(self, request, name: str):  # noqa: ARG002
        project = Project.objects.filter(name=name).first()
        if project is None:
            raise NotFound("Project not found.")
        return Response(ProjectSerializer(project).data, status=status.HTTP_200_OK)


class ProjectNameExistsView(APIView):
    def get(self, request, name: str):  # noqa: ARG002
        return Response({"exists": Project.objects.filter(name=name).exists()}, status=status.HTTP_200_OK)
