import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

RETRY_DELAY_SECONDS = 10.0
SWEEP_INTERVAL_SECONDS = 1.0


@dataclass
class QueuedPayload:
    payload: dict
    retry_at: float
    retried: bool = False


class RetryQueue:
    """Gives each failed payload exactly one more delivery attempt.

    Entries wait a fixed ``retry_delay`` and are swept every
    ``sweep_interval``. After its retry an entry is removed whether or not the
    send succeeded, so a payload that fails twice is dropped with a warning.
    """

    def __init__(
        self,
        send: Callable[[dict], Awaitable[None]],
        retry_delay: float = RETRY_DELAY_SECONDS,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._send = send
        self.retry_delay = retry_delay
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: list[QueuedPayload] = []
        self._timer: asyncio.TimerHandle | None = None
        self._sweeping = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._entries)

    def enqueue(self, payloads: list[dict]) -> None:
        retry_at = self._clock() + self.retry_delay
        self._entries.extend(QueuedPayload(payload=payload, retry_at=retry_at) for payload in payloads)
        self._arm_timer()

    def _arm_timer(self) -> None:
        if self._timer is not None or self._sweeping or not self._entries:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.sweep_interval, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self.sweep())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def sweep(self) -> int:
        """Retry every due entry once; returns how many were delivered."""
        if self._sweeping:
            return 0

        self._sweeping = True
        delivered = 0
        try:
            now = self._clock()
            ready = [entry for entry in self._entries if not entry.retried and entry.retry_at <= now]
            for entry in ready:
                try:
                    await self._send(entry.payload)
                    delivered += 1
                except Exception as error:
                    logger.warning("log retry failed, dropping payload: %s", error)
                finally:
                    entry.retried = True
            self._entries = [entry for entry in self._entries if not entry.retried]
        finally:
            self._sweeping = False
            self._arm_timer()
        return delivered

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
