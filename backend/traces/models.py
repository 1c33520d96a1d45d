from django.db import models

from projects.models import Project, generate_id

TRACE_STATUSES = ("running", "completed", "failed")


class Trace(models.Model):
    id = models.CharField(primary_key=True, max_length=36, default=generate_id, editable=False)
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="traces")
    name = models.TextField()
    start_time = models.TextField()
    end_time = models.TextField(null=True, blank=True)
    duration = models.FloatField(null=True, blank=True)
    status = models.CharField(max_length=16, default="running")
    metadata = models.TextField(default="{}")

    class Meta:
        db_table = "traces"
        indexes = [
            models.Index(fields=["project", "start_time", "id"], name="traces_project_start_id_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"


class Span(models.Model):
    id = models.CharField(primary_key=True, max_length=36, default=generate_id, editable=False)
    trace = models.ForeignKey(Trace, on_delete=models.CASCADE, related_name="spans")
    parent_span_id = models.CharField(max_length=36, null=True, blank=True)
    name = models.TextField()
    start_time = models.TextField()
    end_time = models.TextField(null=True, blank=True)
    duration = models.FloatField(null=True, blank=True)
    status = models.CharField(max_length=16, default="running")
    metadata = models.TextField(default="{}")

    class Meta:
        db_table = "spans"
        indexes = [
            models.Index(fields=["trace", "start_time"], name="spans_trace_start_idx"),
            models.Index(fields=["parent_span_id"], name="spans_parent_idx"),
        ]
