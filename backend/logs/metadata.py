import logging

from django.db import IntegrityError, transaction

from logs.models import Metadata

logger = logging.getLogger(__name__)


class MetadataStore:
    """Registry of distinct ``(project, key, value)`` triples.

    Rows are get-or-created and never updated. Concurrent writers that race on
    the same triple are resolved by the unique constraint: the loser's insert
    fails inside a savepoint and the winner's row is read back.
    """

    def _find(self, project_id: str, key: str, value: str) -> str | None:
        return (
            Metadata.objects.filter(project_id=project_id, key=key, value=value)
            .values_list("id", flat=True)
            .first()
        )

    def get_or_create(self, project_id: str, key: str, value: str) -> str:
        existing_id = self._find(project_id, key, value)
        if existing_id is not None:
            return existing_id

        try:
            with transaction.atomic():
                metadata = Metadata.objects.create(project_id=project_id, key=key, value=value)
        except IntegrityError:
            existing_id = self._find(project_id, key, value)
            if existing_id is None:
                raise
            logger.debug(
                "metadata insert lost race project_id=%s key=%s, reusing id=%s",
                project_id,
                key,
                existing_id,
            )
            return existing_id
        return metadata.id

    def unique_keys_for_project(self, project_id: str) -> list[str]:
        return list(
            Metadata.objects.filter(project_id=project_id)
            .order_by("key")
            .values_list("key", flat=True)
            .distinct()
        )

    def unique_keys(self) -> list[str]:
        return list(Metadata.objects.order_by("key").values_list("key", flat=True).distinct())
