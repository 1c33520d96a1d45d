from uuid import uuid4

from django.db import models

from core.timestamps import utc_iso_now


def generate_id() -> str:
    return str(uuid4())


class Project(models.Model):
    id = models.CharField(primary_key=True, max_length=36, default=generate_id, editable=False)
    name = models.TextField(unique=True)
    description = models.TextField(blank=True, default="")
    created_at = models.TextField(default=utc_iso_now)
    config = models.TextField(default="{}")

    class Meta:
        db_table = "projects"
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"
