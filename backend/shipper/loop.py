import asyncio
import logging
import threading
import time
from typing import Any, Awaitable, Callable

from shipper.batcher import DEFAULT_BATCH_SIZE, DEFAULT_FLUSH_INTERVAL_SECONDS, ClientBatcher
from shipper.retry import RETRY_DELAY_SECONDS, SWEEP_INTERVAL_SECONDS, RetryQueue

logger = logging.getLogger(__name__)


class BackgroundLoop:
    """An event loop running forever in a daemon thread."""

    def __init__(self, name: str = "onelogger-shipper"):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_forever()
        finally:
            self.loop.run_until_complete(self.loop.shutdown_default_executor())
            self.loop.close()

    def stop(self, timeout: float = 5.0) -> None:
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("shipper loop thread did not stop within %ss", timeout)


class LoopBound:
    """Runs work on one event loop no matter which thread calls in.

    The loop is the one passed in, else the loop running at construction
    time, else a private ``BackgroundLoop`` started on first use.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        self._loop = loop
        self._background: BackgroundLoop | None = None
        self._loop_lock = threading.Lock()
        self._closed = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        with self._loop_lock:
            if self._closed:
                raise RuntimeError("Shipper is closed.")
            if self._loop is None:
                self._background = BackgroundLoop()
                self._loop = self._background.loop
            return self._loop

    def _on_loop(self) -> bool:
        if self._closed:
            return False
        try:
            return self._loop is not None and asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _call(self, callback: Callable[..., Any], *args) -> bool:
        """Run ``callback`` on the bound loop; False when the loop is gone."""
        if self._on_loop():
            callback(*args)
            return True
        try:
            self.loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            return False
        return True

    async def _run(self, factory: Callable[[], Awaitable[Any]]):
        if self._on_loop():
            return await factory()
        future = asyncio.run_coroutine_threadsafe(factory(), self.loop)
        return await asyncio.wrap_future(future)

    def _run_sync(self, factory: Callable[[], Awaitable[Any]], timeout: float | None = None):
        if self._on_loop():
            raise RuntimeError("Blocking call made from the shipper's own event loop; await it instead.")
        return asyncio.run_coroutine_threadsafe(factory(), self.loop).result(timeout)

    def _stop_background(self) -> None:
        with self._loop_lock:
            self._closed = True
            background, self._background = self._background, None
            if background is not None:
                self._loop = None
        if background is not None:
            background.stop()


class QueuedShipper(LoopBound):
    """Batches items on the bound loop and gives failed deliveries one retry.

    Subclasses implement ``_deliver(batch)`` and ``_send_one(item)``.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
        retry_delay: float = RETRY_DELAY_SECONDS,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(loop)
        self.batcher = ClientBatcher(self._deliver, batch_size, flush_interval)
        self.retry_queue = RetryQueue(self._send_one, retry_delay, sweep_interval, clock)

    async def _deliver(self, batch: list[dict]) -> None:
        raise NotImplementedError

    async def _send_one(self, item: dict) -> None:
        raise NotImplementedError

    async def flush(self) -> int:
        return await self._run(self.batcher.flush)

    def flush_sync(self, timeout: float | None = None) -> int:
        """Blocking ``flush`` for code that has no event loop of its own."""
        return self._run_sync(self.batcher.flush, timeout)

    def set_batch_config(self, batch_size: int, flush_interval: float) -> None:
        self.batcher.set_batch_config(batch_size, flush_interval)

    async def _shutdown(self) -> None:
        await self.batcher.close()
        self.retry_queue.close()

    async def close(self) -> None:
        if self._closed:
            return
        if self._loop is not None:
            await self._run(self._shutdown)
        self._stop_background()

    def close_sync(self, timeout: float | None = 5.0) -> None:
        if self._closed:
            return
        if self._loop is not None:
            self._run_sync(self._shutdown, timeout)
        self._stop_background()
