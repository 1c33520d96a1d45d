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
            name="Log",
            fields=[
                ("id", models.CharField(default=projects.models.generate_id, editable=False, max_length=36, primary_key=True, serialize=False)),
                ("level", models.TextField()),
                ("message", models.TextField()),
                ("timestamp", models.TextField()),
                ("embedded_metadata", models.TextField(default="{}")),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="logs", to="projects.project")),
            ],
            options={
                "db_table": "logs",
                "indexes": [
                    models.Index(fields=["project", "timestamp", "id"], name="logs_project_ts_id_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Metadata",
            fields=[
                ("id", models.CharField(default=projects.models.generate_id, editable=False, max_length=36, primary_key=True, serialize=False)),
                ("key", models.TextField(db_index=True)),
                ("value", models.TextField(db_index=True)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="metadata", to="projects.project")),
            ],
            options={
                "db_table": "metadata",
                "constraints": [
                    models.UniqueConstraint(fields=("key", "value", "project"), name="metadata_key_value_project_unique"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LogMetadata",
            fields=[
                ("id", models.CharField(default=projects.models.generate_id, editable=False, max_length=36, primary_key=True, serialize=False)),
                ("log", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="metadata_links", to="logs.log")),
                ("metadata", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="log_links", to="logs.metadata")),
            ],
            options={
                "db_table": "log_metadata",
            },
        ),
    ]
