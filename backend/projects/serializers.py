from rest_framework import serializers
from rest_framework.validators import UniqueValidator

from projects.models import Project


class ProjectSerializer(serializers.ModelSerializer):
    name = serializers.CharField(
        max_length=255,
        validators=[UniqueValidator(queryset=Project.objects.all(), message="Project name is already taken.")],
    )
    description = serializers.CharField(required=False, allow_blank=True, default="")

    class Meta:
        model = Project
        fields = ["id", "name", "description", "created_at"]
        read_only_fields = ["id", "created_at"]
