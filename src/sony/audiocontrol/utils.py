import asyncio
import heapq
import logging
import time

_LOGGER = logging.getLogger(__name__)

PRIORITY_COMMAND = 0
PRIORITY_QUERY = 1
PRIORITY_POLL = 2


class Throttle:
    """Serializes requests with minimum spacing and priority ordering.

    Lower *priority* values are dispatched first, so commands issued by a
    user overtake queued background polls.
    """

    def __init__(self, delay: float) -> None:
        self._timestamp = time.monotonic()
        self._delay = delay
        self._queue: list[tuple[int, int, asyncio.Future]] = []
        self._counter = 0
        self._lock = asyncio.Lock()

    async def get(self, priority: int = PRIORITY_QUERY) -> None:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[None] = loop.create_future()

        heapq.heappush(self._queue, (priority, self._counter, future))
        self._counter += 1

        if not self._lock.locked():
            asyncio.ensure_future(self._dispatch())

        await future

    async def _dispatch(self) -> None:
        async with self._lock:
            while self._queue:
                _, _, future = heapq.heappop(self._queue)
                if future.done():
                    continue

                delay = self._timestamp - time.monotonic()
                if delay > 0:
                    await asyncio.sleep(delay)
                self._timestamp = time.monotonic() + self._delay

                if future.cancelled():
                    continue

                future.set_result(None)


class Backoff:
    """Bounded exponential delay between reconnect attempts."""

    def __init__(self, initial: float, maximum: float, factor: float = 2.0) -> None:
        self._initial = initial
        self._maximum = maximum
        self._factor = factor
        self.failures = 0

    @property
    def delay(self) -> float:
        if self.failures == 0:
            return 0.0
        return min(self._initial * self._factor ** (self.failures - 1), self._maximum)

    def failed(self) -> float:
        """Record a failed attempt and return the delay before the next one."""
        self.failures += 1
        _LOGGER.debug("Attempt %d failed, next in %.1fs", self.failures, self.delay)
        return self.delay

    def reset(self) -> None:
        self.failures = 0
