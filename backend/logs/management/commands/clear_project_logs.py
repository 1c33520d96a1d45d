import json

from django.core.management.base import BaseCommand, CommandError

from logs.models import Log, Metadata
from logs.store import LogStore
from projects.models import Project


class Command(BaseCommand):
    help = "Delete every log and metadata row of a project."

    def add_arguments(self, parser):
        parser.add_argument("project_id")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report row counts without deleting anything.",
        )

    def handle(self, *args, **options):
        project_id = options["project_id"]
        if not Project.objects.filter(id=project_id).exists():
            raise CommandError(f"Project '{project_id}' does not exist.")

        if options["dry_run"]:
            result = {
                "project_id": project_id,
                "dry_run": True,
                "log_count": Log.objects.filter(project_id=project_id).count(),
                "metadata_count": Metadata.objects.filter(project_id=project_id).count(),
            }
        else:
            result = LogStore().clear_project_logs(project_id)
        self.stdout.write(json.dumps(result, indent=2, sort_keys=True))
