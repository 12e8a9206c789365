"""Cached control state for a receiver zone.

Provides the State class which keeps the last known value per Domain. Values
are written by the services after successful commands or queries and by the
notification listener when it reconciles pushed or polled changes.
"""

import asyncio
import logging
from typing import Any

from .enums import Domain

_LOGGER = logging.getLogger(__name__)


class State:
    """Last known values of one zone, keyed by Domain.

    A missing key means the value is unknown, which is reported as None.
    """

    _state: dict[Domain, Any]

    def __init__(self, zone: str = "") -> None:
        self._zone = zone
        self._state = dict()
        self._changed: asyncio.Event = asyncio.Event()

    @property
    def zone(self) -> str:
        return self._zone

    def get(self, domain: Domain) -> Any:
        return self._state.get(domain)

    def set(self, domain: Domain, value: Any) -> bool:
        """Store *value* and return True if it differs from the cached one."""
        if domain in self._state and self._state[domain] == value:
            return False
        _LOGGER.debug("%s changed to %r", domain, value)
        self._state[domain] = value
        self._changed.set()
        return True

    def known(self, domain: Domain) -> bool:
        return domain in self._state

    def clear(self) -> None:
        self._state = dict()

    async def wait_changed(self) -> None:
        """Wait until any cached value changes.

        Clears the event afterwards so the next call blocks again.
        """
        await self._changed.wait()
        self._changed.clear()

    def get_power(self) -> bool | None:
        """Return power state (True=on, False=standby, None=unknown)."""
        return self._state.get(Domain.POWER)

    def get_volume(self) -> int | None:
        return self._state.get(Domain.VOLUME)

    def get_mute(self) -> bool | None:
        return self._state.get(Domain.MUTE)

    def get_input(self) -> str | None:
        """Return the uri of the active input, or None if unknown."""
        return self._state.get(Domain.INPUT)

    def get_sound_field(self) -> str | None:
        return self._state.get(Domain.SOUND_FIELD)

    def to_dict(self) -> dict[str, Any]:
        """Return all state values as a dictionary."""
        return {
            "POWER": self.get_power(),
            "VOLUME": self.get_volume(),
            "MUTE": self.get_mute(),
            "INPUT": self.get_input(),
            "SOUND_FIELD": self.get_sound_field(),
        }

    def __repr__(self) -> str:
        return f"State ({self.to_dict()})"
