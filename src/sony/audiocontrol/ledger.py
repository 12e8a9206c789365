"""Shared record of locally initiated changes.

A single ledger is handed to every service of a zone and to the notification
listener. Services stamp a domain after a command succeeded, the listener
consults the stamp to recognise the device echoing that command back.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from .enums import Domain

_LOGGER = logging.getLogger(__name__)


class Ledger:
    """Last-change timestamps and write locks per domain.

    Args:
        clock: Monotonic time source, replaceable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._changes: dict[Domain, float] = {}
        self._locks: dict[Domain, asyncio.Lock] = {}

    def lock(self, domain: Domain) -> asyncio.Lock:
        """Return the lock serializing writes to *domain*."""
        lock = self._locks.get(domain)
        if lock is None:
            lock = self._locks[domain] = asyncio.Lock()
        return lock

    def stamp(self, domain: Domain) -> None:
        self._changes[domain] = self._clock()
        _LOGGER.debug("Local change to %s", domain)

    def last_change(self, domain: Domain) -> float | None:
        return self._changes.get(domain)

    def is_echo(self, domain: Domain, window: float) -> bool:
        """Return True if *domain* was changed locally less than *window* ago."""
        changed = self._changes.get(domain)
        if changed is None:
            return False
        return self._clock() - changed < window

    def __repr__(self) -> str:
        return f"Ledger({self._changes})"
