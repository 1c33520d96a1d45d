from django.db import migrations, models

import core.timestamps
import projects.models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Project",
            fields=[
                ("id", models.CharField(default=projects.models.generate_id, editable=False, max_length=36, primary_key=True, serialize=False)),
                ("name", models.TextField(unique=True)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.TextField(default=core.timestamps.utc_iso_now)),
                ("config", models.TextField(default="{}")),
            ],
            options={
                "db_table": "projects",
                "ordering": ["name"],
            },
        ),
    ]
