from django.db import migrations, models
import django.db.models.deletion

import projects.models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("projects", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Trace",
            fields=[
                ("id", models.CharField(default=projects.models.generate_id, editable=False, max_length=36, primary_key=True, serialize=False)),
                ("name", models.TextField()),
                ("start_time", models.TextField()),
                ("end_time", models.TextField(blank=True, null=True)),
                ("duration", models.FloatField(blank=True, null=True)),
                ("status", models.CharField(default="running", max_length=16)),
                ("metadata", models.TextField(default="{}")),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="traces", to="projects.project")),
            ],
            options={
                "db_table": "traces",
                "indexes": [
                    models.Index(fields=["project", "start_time", "id"], name="traces_project_start_id_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Span",
            fields=[
                ("id", models.CharField(default=projects.models.generate_id, editable=False, max_length=36, primary_key=True, serialize=False)),
                ("parent_span_id", models.CharField(blank=True, max_length=36, null=True)),
                ("name", models.TextField()),
                ("start_time", models.TextField()),
                ("end_time", models.TextField(blank=True, null=True)),
                ("duration", models.FloatField(blank=True, null=True)),
                ("status", models.CharField(default="running", max_length=16)),
                ("metadata", models.TextField(default="{}")),
                ("trace", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="spans", to="traces.trace")),
            ],
            options={
                "db_table": "spans",
                "indexes": [
                    models.Index(fields=["trace", "start_time"], name="spans_trace_start_idx"),
                    models.Index(fields=["parent_span_id"], name="spans_parent_idx"),
                ],
            },
        ),
    ]
