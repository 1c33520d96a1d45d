import functools
import inspect
import logging
import threading
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Callable

from shipper.logger import utc_timestamp
from shipper.loop import QueuedShipper
from shipper.transports import ConsoleLoggerTransport, HttpLoggerTransport, TraceTransport, TransportError

logger = logging.getLogger(__name__)

_current_span: ContextVar["Span | None"] = ContextVar("onelogger_current_span", default=None)


class Span:
    def __init__(
        self,
        name: str,
        trace_id: str,
        parent_span_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        self.id = uuid.uuid4().hex
        self.trace_id = trace_id
        self.parent_span_id = parent_span_id
        self.name = name
        self.metadata = dict(metadata or {})
        self.start_time = datetime.now(timezone.utc)
        self.end_time: datetime | None = None
        self.duration: float | None = None
        self.status = "running"
        self._started = time.perf_counter()
        self._token: Token | None = None

    @property
    def finished(self) -> bool:
        return self.end_time is not None

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    def finish(self, status: str = "completed", error: BaseException | None = None) -> None:
        if self.finished:
            logger.warning("span %s is already finished", self.id)
            return
        self.end_time = datetime.now(timezone.utc)
        self.duration = (time.perf_counter() - self._started) * 1000
        self.status = status
        if error is not None:
            self.status = "failed"
            self.metadata["error"] = {"type": type(error).__name__, "message": str(error)}

    def to_data(self) -> dict:
        return {
            "id": self.id,
            "parent_span_id": self.parent_span_id,
            "name": self.name,
            "start_time": utc_timestamp(self.start_time),
            "end_time": utc_timestamp(self.end_time) if self.end_time else None,
            "duration": self.duration,
            "status": self.status,
            "metadata": self.metadata,
        }


class Tracer(QueuedShipper):
    """Collects nested spans into traces and ships finished traces in batches.

    The current span follows ``contextvars``, so nesting works across
    threads and asyncio tasks. A trace is submitted once every one of its
    spans has finished.
    """

    def __init__(self, project_id: str | None = None, transport: TraceTransport | None = None, **options):
        super().__init__(**options)
        self.project_id = project_id
        self.transport = transport
        self._active: dict[str, list[Span]] = {}
        self._active_lock = threading.Lock()

    def current_span(self) -> Span | None:
        return _current_span.get()

    def start_span(self, name: str, metadata: dict[str, Any] | None = None) -> Span:
        parent = _current_span.get()
        trace_id = parent.trace_id if parent is not None else uuid.uuid4().hex
        span = Span(name, trace_id, parent.id if parent is not None else None, metadata)
        with self._active_lock:
            self._active.setdefault(trace_id, []).append(span)
        span._token = _current_span.set(span)
        return span

    def finish_span(self, span: Span, error: BaseException | None = None) -> None:
        if not span.finished:
            span.finish(error=error)
        token, span._token = span._token, None
        if token is not None:
            try:
                _current_span.reset(token)
            except ValueError:
                logger.debug("span %s finished outside the context that started it", span.id)

        with self._active_lock:
            spans = self._active.get(span.trace_id)
            if not spans or not all(item.finished for item in spans):
                return
            del self._active[span.trace_id]
        self._submit(self.trace_data(spans))

    def trace_data(self, spans: list[Span]) -> dict:
        root = next((span for span in spans if span.parent_span_id is None), spans[0])
        return {
            "project_id": self.project_id or "",
            "name": root.name,
            "start_time": utc_timestamp(root.start_time),
            "end_time": utc_timestamp(root.end_time) if root.end_time else None,
            "duration": root.duration,
            "status": "failed" if any(span.status == "failed" for span in spans) else "completed",
            "metadata": dict(root.metadata),
            "spans": [span.to_data() for span in spans],
        }

    def _submit(self, trace: dict) -> None:
        if not self.project_id or self.transport is None:
            logger.warning("tracer is not initialized, dropping trace %s", trace["name"])
            return
        if not self._call(self.batcher.add, trace):
            logger.warning("tracer event loop is closed, dropping trace %s", trace["name"])

    @contextmanager
    def span(self, name: str, metadata: dict[str, Any] | None = None):
        current = self.start_span(name, metadata)
        error = None
        try:
            yield current
        except Exception as exc:
            error = exc
            raise
        finally:
            self.finish_span(current, error=error)

    def wrap(self, name: str | None = None, metadata: dict | Callable[..., dict] | None = None):
        """Decorator running each call of a function (sync or async) in a span.

        ``metadata`` may be a dict or a callable receiving the call arguments.
        """

        def resolve(args, kwargs):
            return metadata(*args, **kwargs) if callable(metadata) else metadata

        def decorator(func):
            span_name = name or func.__qualname__

            if inspect.iscoroutinefunction(func):

                @functools.wraps(func)
                async def async_wrapper(*args, **kwargs):
                    with self.span(span_name, resolve(args, kwargs)):
                        return await func(*args, **kwargs)

                return async_wrapper

            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                with self.span(span_name, resolve(args, kwargs)):
                    return func(*args, **kwargs)

            return wrapper

        return decorator

    async def _send_one(self, trace: dict) -> None:
        await self._send([trace])

    async def _send(self, traces: list[dict]) -> None:
        send_traces = getattr(self.transport, "send_traces", None)
        if send_traces is None:
            raise TransportError("Transport cannot send traces.")
        await send_traces(traces)

    async def _deliver(self, batch: list[dict]) -> None:
        try:
            await self._send(batch)
        except Exception as error:
            logger.warning("failed to send %s traces, queued for retry: %s", len(batch), error)
            self.retry_queue.enqueue(batch)


def build_tracer(project_id: str, base_url: str | None = None, is_dev: bool = True, *, timeout: float = 5.0, **options) -> Tracer:
    """Tracer shipping to ``base_url`` in development, to the console otherwise."""
    if not is_dev or not base_url:
        return Tracer(project_id, ConsoleLoggerTransport(), **options)
    return Tracer(project_id, HttpLoggerTransport(base_url, timeout=timeout), **options)
