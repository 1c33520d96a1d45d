import logging

from celery import shared_task

from logs.store import LogStore

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def clear_project_logs_task(self, project_id: str):  # noqa: ARG001
    try:
        result = LogStore().clear_project_logs(project_id)
    except Exception:
        logger.exception("clear project logs task failed project_id=%s", project_id)
        raise
    logger.info("clear project logs task completed project_id=%s", project_id)
    return result
