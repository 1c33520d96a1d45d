import asyncio
import json
import logging
from typing import Protocol
from urllib import error as urlerror
from urllib import request as urlrequest

logger = logging.getLogger(__name__)


class TransportError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LoggerTransport(Protocol):
    async def send(self, payload: dict) -> None: ...


class BulkLoggerTransport(LoggerTransport, Protocol):
    async def send_bulk(self, payloads: list[dict]) -> None: ...


class TraceTransport(Protocol):
    async def send_traces(self, traces: list[dict]) -> None: ...


def supports_bulk(transport) -> bool:
    return callable(getattr(transport, "send_bulk", None))


def request_json(base_url: str, method: str, path: str, body=None, timeout: float = 5.0):
    """Send a JSON request and return the decoded response body, if any.

    HTTP status >= 400 and connection failures raise ``TransportError``.
    """
    data = json.dumps(body).encode("utf-8") if body is not None else None
    req = urlrequest.Request(
        f"{base_url}{path}",
        data=data,
        method=method,
        headers={"Content-Type": "application/json", "Accept": "application/json"},
    )
    try:
        with urlrequest.urlopen(req, timeout=timeout) as response:
            status_code = getattr(response, "status", None)
            raw = response.read()
    except urlerror.HTTPError as error:
        raise TransportError(f"{path} responded with HTTP {error.code}.", error.code) from error
    except (urlerror.URLError, OSError) as error:
        raise TransportError(f"Unable to reach {base_url}: {error}") from error

    if status_code is not None and int(status_code) >= 400:
        raise TransportError(f"{path} responded with HTTP {status_code}.", int(status_code))
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError as error:
        raise TransportError(f"{path} returned invalid JSON.") from error


class HttpLoggerTransport:
    """Posts payloads to a One Logger server.

    ``urllib`` blocks, so each request runs in a worker thread to keep the
    caller's event loop free.
    """

    def __init__(self, base_url: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _post(self, path: str, body) -> None:
        request_json(self.base_url, "POST", path, body, self.timeout)

    async def send(self, payload: dict) -> None:
        await asyncio.to_thread(self._post, "/api/logs", payload)

    async def send_bulk(self, payloads: list[dict]) -> None:
        await asyncio.to_thread(self._post, "/api/logs/bulk", {"logs": payloads})

    async def send_traces(self, traces: list[dict]) -> None:
        await asyncio.to_thread(self._post, "/api/traces/bulk", {"traces": traces})


class ConsoleLoggerTransport:
    LEVELS = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warn": logging.WARNING,
        "error": logging.ERROR,
    }

    def __init__(self, logger_name: str = "onelogger.console"):
        self.output = logging.getLogger(logger_name)

    @staticmethod
    def format_payload(payload: dict) -> str:
        metadata = payload.get("metadata") or []
        meta_string = ""
        if metadata:
            meta_string = " | " + ", ".join(f"{entry['key']}={entry['value']}" for entry in metadata)
        level = str(payload.get("level", "log")).upper()
        return f"[{payload.get('timestamp')}] [{level}] {payload.get('message')}{meta_string}"

    @staticmethod
    def format_trace(trace: dict) -> str:
        duration = trace.get("duration")
        duration_string = f" ({duration:.1f}ms)" if isinstance(duration, (int, float)) else ""
        spans = trace.get("spans") or []
        return (
            f"[{trace.get('start_time')}] [TRACE] {trace.get('name')}{duration_string}"
            f" status={trace.get('status')} spans={len(spans)}"
        )

    async def send(self, payload: dict) -> None:
        level = self.LEVELS.get(str(payload.get("level")), logging.INFO)
        self.output.log(level, "%s", self.format_payload(payload))

    async def send_bulk(self, payloads: list[dict]) -> None:
        for payload in payloads:
            await self.send(payload)

    async def send_traces(self, traces: list[dict]) -> None:
        for trace in traces:
            self.output.info("%s", self.format_trace(trace))
