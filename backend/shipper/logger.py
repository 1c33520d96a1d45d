import json
import logging
from datetime import datetime, timezone
from typing import Any

from shipper.loop import QueuedShipper
from shipper.projects import ProjectClient, resolve_project
from shipper.transports import (
    ConsoleLoggerTransport,
    HttpLoggerTransport,
    LoggerTransport,
    TransportError,
    supports_bulk,
)

logger = logging.getLogger(__name__)


def utc_timestamp(value: datetime | None = None) -> str:
    value = value or datetime.now(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _metadata_entries(meta: dict[str, Any] | None) -> list[dict]:
    if not meta:
        return []
    return [
        {"key": str(key), "value": value if isinstance(value, str) else json.dumps(value, default=str)}
        for key, value in meta.items()
    ]


class Logger(QueuedShipper):
    """Application-side handle that ships log lines to a transport.

    Level methods only enqueue and return, from any thread, with or without
    a running event loop. Delivery happens on the logger's loop: batches go
    out through ``send_bulk`` when the transport has it, otherwise item by
    item, and anything that fails is retried once.
    """

    def __init__(
        self,
        project_id: str | None = None,
        transport: LoggerTransport | None = None,
        **options,
    ):
        super().__init__(**options)
        self.project_id = project_id
        self.transport = transport

    def _make_payload(self, level: str, message: str, meta: dict[str, Any] | None) -> dict:
        return {
            "project_id": self.project_id or "",
            "level": level,
            "message": message,
            "timestamp": utc_timestamp(),
            "metadata": _metadata_entries(meta),
        }

    def _enqueue(self, level: str, message: str, meta: dict[str, Any] | None) -> None:
        if not self.project_id or self.transport is None:
            logger.warning("logger is not initialized, dropping %s message", level)
            return
        if not self._call(self.batcher.add, self._make_payload(level, message, meta)):
            logger.warning("logger event loop is closed, dropping %s message", level)

    def log(self, message: str, meta: dict[str, Any] | None = None) -> None:
        self._enqueue("log", message, meta)

    def info(self, message: str, meta: dict[str, Any] | None = None) -> None:
        self._enqueue("info", message, meta)

    def warn(self, message: str, meta: dict[str, Any] | None = None) -> None:
        self._enqueue("warn", message, meta)

    def error(self, message: str, meta: dict[str, Any] | None = None) -> None:
        self._enqueue("error", message, meta)

    def debug(self, message: str, meta: dict[str, Any] | None = None) -> None:
        self._enqueue("debug", message, meta)

    async def _send_one(self, payload: dict) -> None:
        if self.transport is None:
            raise TransportError("No transport configured.")
        await self.transport.send(payload)

    async def _deliver(self, batch: list[dict]) -> None:
        transport = self.transport
        if transport is None:
            self.retry_queue.enqueue(batch)
            return

        if supports_bulk(transport):
            try:
                await transport.send_bulk(batch)
            except Exception as error:
                logger.warning(
                    "failed to send %s logs, queued for retry in %ss: %s",
                    len(batch),
                    self.retry_queue.retry_delay,
                    error,
                )
                self.retry_queue.enqueue(batch)
            return

        failed = []
        for payload in batch:
            try:
                await transport.send(payload)
            except Exception as error:
                logger.warning("failed to send log, queued for retry: %s", error)
                failed.append(payload)
        if failed:
            self.retry_queue.enqueue(failed)


def build_logger(
    name: str,
    base_url: str | None = None,
    is_dev: bool = True,
    *,
    description: str = "",
    fail_on_duplicate_name: bool = False,
    timeout: float = 5.0,
    **options,
) -> Logger:
    """Create a logger for the project called ``name``.

    In development with a server URL the project is looked up by name, and
    created when missing, then logs are shipped over HTTP. Outside
    development, without a URL, or when the server cannot be reached, logs
    are written to the console and ``name`` stands in for the project id.
    """
    if not is_dev:
        logger.info("running in non-dev mode, using console transport only")
        return Logger(name, ConsoleLoggerTransport(), **options)
    if not base_url:
        logger.info("no server URL configured, logs will be printed to the console only")
        return Logger(name, ConsoleLoggerTransport(), **options)

    try:
        project = resolve_project(
            ProjectClient(base_url, timeout), name, description, fail_on_duplicate_name
        )
    except (TransportError, KeyError, TypeError) as error:
        logger.warning(
            "failed to initialize HTTP logger transport, falling back to console logging: %s", error
        )
        return Logger(name, ConsoleLoggerTransport(), **options)

    return Logger(project["id"], HttpLoggerTransport(base_url, timeout=timeout), **options)
