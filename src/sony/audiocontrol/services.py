"""Command services for the controllable domains of a receiver zone.

Each service wraps the Client with the device's method names and zone
parameters for one domain. Reads degrade to the last known value when the
device can't answer, writes update the shared State and stamp the Ledger
only once the device accepted them.
"""

import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from .client import Client
from .dataclasses import InputEntry, SoundFieldEntry, VolumeInformation
from .enums import Domain, EventSource
from .exceptions import DeviceError, InvalidArgument, ParseError, TransportError
from .ledger import Ledger
from .packets import MAIN_ZONE, flatten, matches_zone
from .state import State
from .utils import PRIORITY_COMMAND, PRIORITY_POLL, PRIORITY_QUERY

_LOGGER = logging.getLogger(__name__)

Reporter = Callable[[Domain, Any], Awaitable[bool]]


async def reconcile(
    state: State, ledger: Ledger, domain: Domain, value: Any, window: float
) -> bool:
    """Apply a value reported by the device to *state*.

    Returns True if the cached value changed. Values arriving within *window*
    of a local change to the same domain are echoes and are ignored.
    """
    async with ledger.lock(domain):
        if ledger.is_echo(domain, window):
            _LOGGER.debug("Ignoring %s=%r, echo of a local change", domain, value)
            return False
        return state.set(domain, value)


class ServiceBase:
    """Common behaviour of all domain services.

    Subclasses implement ``query`` (raise on failure) and ``_command``.
    """

    domain: Domain
    event_source: EventSource

    def __init__(
        self,
        client: Client,
        state: State,
        ledger: Ledger,
        zone: str = MAIN_ZONE,
        debounce_window: float = 1.0,
    ) -> None:
        self._client = client
        self._state = state
        self._ledger = ledger
        self._zone = zone
        self._debounce_window = debounce_window
        self._reporter: Reporter | None = None

    @property
    def zone(self) -> str:
        return self._zone

    def set_reporter(self, reporter: Reporter) -> None:
        """Hand values found by queries to *reporter* so observers see them."""
        self._reporter = reporter

    async def query(self, *, priority: int = PRIORITY_QUERY) -> Any:
        raise NotImplementedError()

    async def poll(self) -> list[tuple[Domain, Any]]:
        """Query the device and return (domain, value) pairs, raising on failure."""
        return [(self.domain, await self.query(priority=PRIORITY_POLL))]

    async def _command(self, value: Any) -> None:
        raise NotImplementedError()

    def _validate(self, value: Any) -> Any:
        return value

    async def _refresh(self, domain: Domain, value: Any) -> Any:
        if self._reporter is not None:
            await self._reporter(domain, value)
        else:
            await reconcile(self._state, self._ledger, domain, value, self._debounce_window)
        return self._state.get(domain)

    async def get_current_state(self) -> Any:
        """Query the device, falling back to the cached value on failure."""
        try:
            value = await self.query()
        except (TransportError, DeviceError, ParseError) as exception:
            _LOGGER.warning(
                "Querying %s failed, using last known value: %s", self.domain, exception
            )
            return self._state.get(self.domain)
        return await self._refresh(self.domain, value)

    async def _apply(
        self, domain: Domain, value: Any, command: Callable[[Any], Awaitable[None]]
    ) -> None:
        async with self._ledger.lock(domain):
            try:
                await command(value)
            except (TransportError, DeviceError) as exception:
                _LOGGER.error("Setting %s to %r failed: %s", domain, value, exception)
                raise
            self._state.set(domain, value)
            self._ledger.stamp(domain)

    async def set_state(self, value: Any) -> None:
        """Send *value* to the device and cache it once accepted.

        Raises InvalidArgument for values outside the domain, and propagates
        TransportError/DeviceError with the cache left untouched.
        """
        await self._apply(self.domain, self._validate(value), self._command)


class PowerService(ServiceBase):
    """Power of the zone: True (on), False (standby) or None (unknown)."""

    domain = Domain.POWER
    event_source = EventSource.AV_CONTENT

    async def query(self, *, priority: int = PRIORITY_QUERY) -> bool:
        if self._zone == MAIN_ZONE:
            result = await self._client.request(
                "system", "getPowerStatus", [], "1.1", priority=priority
            )
            for item in flatten(result):
                if "status" in item:
                    return item["status"] == "active"
        else:
            result = await self._client.request(
                "avContent", "getCurrentExternalTerminalsStatus", [], "1.0", priority=priority
            )
            for item in flatten(result):
                if item.get("uri") == self._zone:
                    return item.get("active") == "active"
        raise ParseError(f"No power status for zone {self._zone!r} in {result!r}")

    def _validate(self, value: Any) -> bool:
        if not isinstance(value, bool):
            raise InvalidArgument(f"Power must be True or False, got {value!r}")
        return value

    async def _command(self, value: bool) -> None:
        if self._zone == MAIN_ZONE:
            await self._client.request(
                "system",
                "setPowerStatus",
                [{"status": "active" if value else "standby"}],
                "1.1",
                priority=PRIORITY_COMMAND,
            )
        else:
            await self._client.request(
                "avContent",
                "setActiveTerminal",
                [{"active": "active" if value else "inactive", "uri": self._zone}],
                "1.0",
                priority=PRIORITY_COMMAND,
            )


class VolumeService(ServiceBase):
    """Volume level and mute flag of the zone.

    Level and mute are independent, as on the device: raising the level of a
    muted zone leaves it muted.
    """

    domain = Domain.VOLUME
    event_source = EventSource.AUDIO

    def __init__(
        self,
        client: Client,
        state: State,
        ledger: Ledger,
        zone: str = MAIN_ZONE,
        debounce_window: float = 1.0,
        max_volume: int = 100,
    ) -> None:
        super().__init__(client, state, ledger, zone, debounce_window)
        self._max_volume = max_volume

    @property
    def max_volume(self) -> int:
        return self._max_volume

    async def query_information(self, *, priority: int = PRIORITY_QUERY) -> VolumeInformation:
        result = await self._client.request(
            "audio", "getVolumeInformation", [{"output": self._zone}], "1.1", priority=priority
        )
        for item in flatten(result):
            if matches_zone(item.get("output"), self._zone):
                return VolumeInformation.from_dict(item)
        raise ParseError(f"No volume information for zone {self._zone!r} in {result!r}")

    async def query(self, *, priority: int = PRIORITY_QUERY) -> int:
        return (await self.query_information(priority=priority)).volume

    async def poll(self) -> list[tuple[Domain, Any]]:
        info = await self.query_information(priority=PRIORITY_POLL)
        return [(Domain.VOLUME, info.volume), (Domain.MUTE, info.mute)]

    def _validate(self, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise InvalidArgument(f"Volume must be a number, got {value!r}")
        if not math.isfinite(value):
            raise InvalidArgument(f"Volume must be finite, got {value!r}")
        return max(0, min(int(value), self._max_volume))

    async def _command(self, value: int) -> None:
        await self._client.request(
            "audio",
            "setAudioVolume",
            [{"output": self._zone, "volume": str(value)}],
            "1.1",
            priority=PRIORITY_COMMAND,
        )

    async def get_mute(self) -> bool | None:
        """Query the mute flag, falling back to the cached value on failure."""
        try:
            info = await self.query_information()
        except (TransportError, DeviceError, ParseError) as exception:
            _LOGGER.warning("Querying mute failed, using last known value: %s", exception)
            return self._state.get_mute()
        await self._refresh(Domain.VOLUME, info.volume)
        return await self._refresh(Domain.MUTE, info.mute)

    async def set_mute(self, mute: bool) -> None:
        if not isinstance(mute, bool):
            raise InvalidArgument(f"Mute must be True or False, got {mute!r}")
        await self._apply(Domain.MUTE, mute, self._mute_command)

    async def _mute_command(self, mute: bool) -> None:
        await self._client.request(
            "audio",
            "setAudioMute",
            [{"output": self._zone, "mute": "on" if mute else "off"}],
            "1.1",
            priority=PRIORITY_COMMAND,
        )

    async def _step(self, step: str) -> None:
        # The resulting level is only known once the device reports it, so
        # neither the cache nor the ledger is touched here.
        try:
            await self._client.request(
                "audio",
                "setAudioVolume",
                [{"output": self._zone, "volume": step}],
                "1.1",
                priority=PRIORITY_COMMAND,
            )
        except (TransportError, DeviceError) as exception:
            _LOGGER.error("Volume step %s failed: %s", step, exception)
            raise

    async def inc_volume(self) -> None:
        """Increment volume by one step."""
        await self._step("+1")

    async def dec_volume(self) -> None:
        """Decrement volume by one step."""
        await self._step("-1")


class _SelectorService(ServiceBase):
    """A service bound to one configured value out of a set of choices."""

    def __init__(
        self,
        client: Client,
        state: State,
        ledger: Ledger,
        name: str,
        value: str,
        choices: Sequence[str],
        zone: str = MAIN_ZONE,
        debounce_window: float = 1.0,
    ) -> None:
        super().__init__(client, state, ledger, zone, debounce_window)
        self._name = name
        self._value = value
        self._choices = frozenset(choices) | {value}

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> str:
        return self._value

    def _validate(self, value: Any) -> str:
        if value not in self._choices:
            raise InvalidArgument(f"{value!r} is not a configured {self.domain}")
        return value

    def is_active(self) -> bool:
        """Return True if the cached value is this service's own value."""
        return self._state.get(self.domain) == self._value

    async def activate(self) -> None:
        await self.set_state(self._value)


class InputService(_SelectorService):
    """One configured input; the domain value is the active input's uri."""

    domain = Domain.INPUT
    event_source = EventSource.AV_CONTENT

    def __init__(
        self,
        client: Client,
        state: State,
        ledger: Ledger,
        entry: InputEntry,
        entries: Sequence[InputEntry] = (),
        zone: str = MAIN_ZONE,
        debounce_window: float = 1.0,
    ) -> None:
        super().__init__(
            client,
            state,
            ledger,
            entry.name,
            entry.uri,
            [e.uri for e in entries],
            zone,
            debounce_window,
        )

    @property
    def uri(self) -> str:
        return self._value

    async def query(self, *, priority: int = PRIORITY_QUERY) -> str:
        result = await self._client.request(
            "avContent",
            "getPlayingContentInfo",
            [{"output": self._zone}],
            "1.2",
            priority=priority,
        )
        for item in flatten(result):
            if matches_zone(item.get("output"), self._zone) and "uri" in item:
                return item["uri"]
        raise ParseError(f"No playing content for zone {self._zone!r} in {result!r}")

    async def _command(self, value: str) -> None:
        await self._client.request(
            "avContent",
            "setPlayContent",
            [{"output": self._zone, "uri": value}],
            "1.2",
            priority=PRIORITY_COMMAND,
        )


class SoundFieldService(_SelectorService):
    """One configured sound field; the domain value is the active field."""

    domain = Domain.SOUND_FIELD
    event_source = EventSource.AUDIO

    def __init__(
        self,
        client: Client,
        state: State,
        ledger: Ledger,
        entry: SoundFieldEntry,
        entries: Sequence[SoundFieldEntry] = (),
        zone: str = MAIN_ZONE,
        debounce_window: float = 1.0,
    ) -> None:
        super().__init__(
            client,
            state,
            ledger,
            entry.name,
            entry.value,
            [e.value for e in entries],
            zone,
            debounce_window,
        )

    async def query(self, *, priority: int = PRIORITY_QUERY) -> str:
        result = await self._client.request(
            "audio", "getSoundSettings", [{"target": "soundField"}], "1.1", priority=priority
        )
        for item in flatten(result):
            if item.get("target") == "soundField" and "currentValue" in item:
                return item["currentValue"]
        raise ParseError(f"No sound field in {result!r}")

    async def _command(self, value: str) -> None:
        await self._client.request(
            "audio",
            "setSoundSettings",
            [{"settings": [{"target": "soundField", "value": value}]}],
            "1.1",
            priority=PRIORITY_COMMAND,
        )
