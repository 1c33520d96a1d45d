from django.db import models

from projects.models import Project, generate_id


class Log(models.Model):
    id = models.CharField(primary_key=True, max_length=36, default=generate_id, editable=False)
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="logs")
    level = models.TextField()
    message = models.TextField()
    timestamp = models.TextField()
    embedded_metadata = models.TextField(default="{}")

    class Meta:
        db_table = "logs"
        indexes = [
            models.Index(fields=["project", "timestamp", "id"], name="logs_project_ts_id_idx"),
        ]

    def __str__(self) -> str:
        return f"Log {self.id} ({self.level})"


class Metadata(models.Model):
    id = models.CharField(primary_key=True, max_length=36, default=generate_id, editable=False)
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="metadata")
    key = models.TextField(db_index=True)
    value = models.TextField(db_index=True)

    class Meta:
        db_table = "metadata"
        constraints = [
            models.UniqueConstraint(
                fields=["key", "value", "project"],
                name="metadata_key_value_project_unique",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


class LogMetadata(models.Model):
    id = models.CharField(primary_key=True, max_length=36, default=generate_id, editable=False)
    log = models.ForeignKey(Log, on_delete=models.CASCADE, related_name="metadata_links")
    metadata = models.ForeignKey(Metadata, on_delete=models.CASCADE, related_name="log_links")

    class Meta:
        db_table = "log_metadata"

    def __str__(self) -> str:
        return f"LogMetadata {self.log_id}:{self.metadata_id}"
