import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_FLUSH_INTERVAL_SECONDS = 5.0


class ClientBatcher:
    """Collects payloads in memory and hands them to ``deliver`` in batches.

    A batch goes out when the queue reaches ``batch_size`` or when the single
    pending timer fires, whichever comes first. Every method must be called
    from the event loop that owns the batcher.
    """

    def __init__(
        self,
        deliver: Callable[[list[dict]], Awaitable[None]],
        batch_size: int = DEFAULT_BATCH_SIZE,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
    ):
        self._deliver = deliver
        self._queue: list[dict] = []
        self._timer: asyncio.TimerHandle | None = None
        self._flushing = False
        self._tasks: set[asyncio.Task] = set()
        self.set_batch_config(batch_size, flush_interval)

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def is_flushing(self) -> bool:
        return self._flushing

    def set_batch_config(self, batch_size: int, flush_interval: float) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1.")
        if flush_interval <= 0:
            raise ValueError("flush_interval must be positive.")
        self.batch_size = batch_size
        self.flush_interval = flush_interval

    def add(self, payload: dict) -> None:
        self._queue.append(payload)
        if len(self._queue) >= self.batch_size:
            self._cancel_timer()
            self._spawn_flush()
        else:
            self._arm_timer()

    def _arm_timer(self) -> None:
        if self._timer is not None:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.flush_interval, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self._spawn_flush()

    def _spawn_flush(self) -> None:
        task = asyncio.get_running_loop().create_task(self.flush())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def flush(self) -> int:
        """Deliver everything queued right now; returns the batch size sent.

        A flush that starts while another is in flight does nothing; whatever
        it would have sent stays queued and is picked up once the running
        delivery finishes.
        """
        if self._flushing or not self._queue:
            return 0

        self._cancel_timer()
        self._flushing = True
        batch, self._queue = self._queue, []
        try:
            await self._deliver(batch)
        finally:
            self._flushing = False
            if self._queue:
                if len(self._queue) >= self.batch_size:
                    self._spawn_flush()
                else:
                    self._arm_timer()
        return len(batch)

    async def close(self) -> None:
        self._cancel_timer()
        while True:
            in_flight = [task for task in self._tasks if not task.done()]
            if not in_flight:
                break
            await asyncio.gather(*in_flight, return_exceptions=True)
        await self.flush()
        self._cancel_timer()
