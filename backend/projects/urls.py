from django.urls import path

from projects.views import (
    ProjectByNameView,
    ProjectDetailView,
    ProjectListCreateView,
    ProjectNameExistsView,
)

urlpatterns = [
    path("projects", ProjectListCreateView.as_view(), name="projects-list-create"),
    path("projects/by-name/<str:name>", ProjectByNameView.as_view(), name="projects-by-name"),
    path("projects/by-name/<str:name>/exists", ProjectNameExistsView.as_view(), name="projects-name-exists"),
    path("projects/<str:project_id>", ProjectDetailView.as_view(), name="projects-detail"),
]
