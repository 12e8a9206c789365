"""Notification listener keeping the cached state in sync with the device.

For every event source the listener keeps a websocket subscription open. When
the device can't push, or the socket keeps failing, the subscription falls back
to polling the domains of that source until a reconnect succeeds. Changes from
either path go through the same reconciliation: echoes of local commands are
dropped, real changes update the State and are reported to observers.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable, Sequence
from contextlib import contextmanager
from typing import Any

import aiohttp
from aiohttp import ClientWebSocketResponse, WSMsgType

from .client import Client
from .config import DEFAULT_DEBOUNCE_WINDOW, DEFAULT_EVENT_SOURCES, DEFAULT_POLLING_INTERVAL
from .dataclasses import ChangeEvent, VolumeInformation
from .enums import Domain, EventSource, SubscriptionState
from .exceptions import (
    AudioControlException,
    DeviceError,
    NoSuchMethod,
    ParseError,
    TransportError,
    UnsupportedOperation,
)
from .ledger import Ledger
from .packets import (
    MAIN_ZONE,
    CommandRequest,
    CommandResponse,
    NotificationFrame,
    is_main_zone,
    matches_zone,
    parse_frame,
)
from .services import ServiceBase, reconcile
from .state import State
from .utils import Backoff

_LOGGER = logging.getLogger(__name__)

_HEARTBEAT_INTERVAL = 30.0
_SUBSCRIBE_TIMEOUT = 5.0

Change = tuple[Domain, Any]
ChangeHandler = Callable[[Domain, Any], None]
EventListener = Callable[[ChangeEvent], None]
StateListener = Callable[[EventSource, SubscriptionState], None]


def _volume_changes(items: list[dict], zone: str) -> list[Change]:
    changes: list[Change] = []
    for item in items:
        if matches_zone(item.get("output"), zone):
            info = VolumeInformation.from_dict(item)
            changes.append((Domain.VOLUME, info.volume))
            changes.append((Domain.MUTE, info.mute))
    return changes


def _content_changes(items: list[dict], zone: str) -> list[Change]:
    return [
        (Domain.INPUT, item["uri"])
        for item in items
        if matches_zone(item.get("output"), zone) and "uri" in item
    ]


def _power_changes(items: list[dict], zone: str) -> list[Change]:
    if not is_main_zone(zone):
        return []
    return [(Domain.POWER, item["status"] == "active") for item in items if "status" in item]


def _terminal_changes(items: list[dict], zone: str) -> list[Change]:
    return [
        (Domain.POWER, item.get("active") == "active")
        for item in items
        if "uri" in item and matches_zone(item["uri"], zone)
    ]


def _settings_changes(items: list[dict], zone: str) -> list[Change]:
    changes: list[Change] = []
    for item in items:
        setting = item.get("apiMappingUpdate", item)
        if not isinstance(setting, dict):
            raise ParseError(f"Unexpected settings update {item!r}")
        if setting.get("target") == "soundField" and "currentValue" in setting:
            changes.append((Domain.SOUND_FIELD, setting["currentValue"]))
    return changes


_FRAME_PARSERS: dict[str, Callable[[list[dict], str], list[Change]]] = {
    "notifyVolumeInformation": _volume_changes,
    "notifyPlayingContentInfo": _content_changes,
    "notifyPowerStatus": _power_changes,
    "notifyExternalTerminalStatus": _terminal_changes,
    "notifySettingsUpdate": _settings_changes,
}


def parse_changes(frame: NotificationFrame, zone: str = MAIN_ZONE) -> list[Change]:
    """Translate a notification into (domain, value) pairs for *zone*.

    Unknown notifications yield no pairs, malformed ones raise ParseError.
    """
    parser = _FRAME_PARSERS.get(frame.method)
    if parser is None:
        _LOGGER.debug("Ignoring notification %s", frame.method)
        return []
    return parser(frame.items(), zone)


class Subscription:
    """Notification subscription for one event source.

    Runs as its own task. States and transitions:

    * DISCONNECTED: connect; on success go LIVE, on failure retry with
      backoff and go POLLING after too many consecutive failures, or right
      away if the device does not support push for this source.
    * LIVE: apply frames as they arrive; go DISCONNECTED when the socket
      closes.
    * POLLING: query the source's domains every polling interval, then try
      one reconnect.
    """

    def __init__(self, listener: "NotificationListener", source: EventSource) -> None:
        self._listener = listener
        self._source = source
        self._state = SubscriptionState.DISCONNECTED
        self._ws: ClientWebSocketResponse | None = None
        self._task: asyncio.Task | None = None
        self._backoff = Backoff(listener.reconnect_delay, listener.max_reconnect_delay)
        self.push_supported = True

    @property
    def source(self) -> EventSource:
        return self._source

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _set_state(self, state: SubscriptionState) -> None:
        if state is self._state:
            return
        _LOGGER.info("%s subscription %s -> %s", self._source, self._state.name, state.name)
        self._state = state
        self._listener._state_changed(self._source, state)

    def start(self) -> None:
        self._task = asyncio.create_task(self.run(), name=f"subscription-{self._source}")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self._close()
        self._set_state(SubscriptionState.DISCONNECTED)

    async def _close(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            await ws.close()

    async def run(self) -> None:
        while True:
            if self._state is SubscriptionState.POLLING:
                await self._listener.poll(self._source)
                await asyncio.sleep(self._listener.polling_interval)
                if not self.push_supported:
                    continue

            if await self._connect():
                self._backoff.reset()
                self._set_state(SubscriptionState.LIVE)
                # catch up on anything missed while not subscribed
                await self._listener.poll(self._source)
                await self._receive()
                self._set_state(SubscriptionState.DISCONNECTED)
                continue

            if not self.push_supported or self._state is SubscriptionState.POLLING:
                self._set_state(SubscriptionState.POLLING)
                continue

            delay = self._backoff.failed()
            if self._backoff.failures >= self._listener.max_reconnect_attempts:
                _LOGGER.warning(
                    "%s subscription failed %d times, polling every %.1fs",
                    self._source,
                    self._backoff.failures,
                    self._listener.polling_interval,
                )
                self._set_state(SubscriptionState.POLLING)
            else:
                await asyncio.sleep(delay)

    async def _connect(self) -> bool:
        url = self._listener.client.websocket_url(self._source)
        _LOGGER.debug("Connecting to %s", url)
        try:
            async with asyncio.timeout(_SUBSCRIBE_TIMEOUT):
                ws = await self._listener.client.session.ws_connect(
                    url, heartbeat=_HEARTBEAT_INTERVAL
                )
        except aiohttp.WSServerHandshakeError as exception:
            if exception.status == 404:
                _LOGGER.info("No notifications available on %s", url)
                self.push_supported = False
            else:
                _LOGGER.warning("Websocket handshake with %s failed: %s", url, exception)
            return False
        except (aiohttp.ClientError, TimeoutError, OSError) as exception:
            _LOGGER.warning("Unable to connect to %s: %s", url, exception)
            return False

        try:
            await self._subscribe(ws)
        except (NoSuchMethod, UnsupportedOperation) as exception:
            _LOGGER.info("%s does not support notifications: %s", self._source, exception)
            self.push_supported = False
        except (
            DeviceError,
            TransportError,
            TimeoutError,
            aiohttp.ClientError,
            ConnectionError,
        ) as exception:
            _LOGGER.warning("Subscribing to %s failed: %s", self._source, exception)
        else:
            self._ws = ws
            return True

        await ws.close()
        return False

    async def _call(self, ws: ClientWebSocketResponse, request: CommandRequest) -> list:
        """Send *request* on the socket and wait for its answer.

        Notifications arriving in between are processed as usual.
        """
        await ws.send_str(request.to_json())
        async with asyncio.timeout(_SUBSCRIBE_TIMEOUT):
            while True:
                msg = await ws.receive()
                if msg.type is not WSMsgType.TEXT:
                    raise TransportError(ConnectionError(f"Websocket closed: {msg.type!r}"))
                try:
                    frame = parse_frame(msg.data)
                except ParseError as exception:
                    _LOGGER.warning("Dropping frame on %s: %s", self._source, exception)
                    continue
                if isinstance(frame, CommandResponse):
                    if frame.responds_to(request):
                        return frame.raise_for_error()
                    continue
                await self._listener.process(self._source, frame)

    async def _subscribe(self, ws: ClientWebSocketResponse) -> None:
        result = await self._call(
            ws,
            CommandRequest(
                self._source, "switchNotifications", [{"enabled": [], "disabled": []}], "1.0", 1
            ),
        )
        available: list = []
        for item in result:
            if isinstance(item, dict):
                available.extend(item.get("enabled", []))
                available.extend(item.get("disabled", []))

        await self._call(
            ws,
            CommandRequest(
                self._source,
                "switchNotifications",
                [{"enabled": available, "disabled": []}],
                "1.0",
                2,
            ),
        )
        _LOGGER.info(
            "Subscribed to %d notifications on %s",
            len(available),
            self._source,
        )

    async def _receive(self) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            async for msg in ws:
                if msg.type is WSMsgType.TEXT:
                    await self._listener.handle_text(self._source, msg.data)
                elif msg.type is WSMsgType.ERROR:
                    _LOGGER.error("Websocket error on %s: %s", self._source, ws.exception())
                    break
                else:
                    _LOGGER.debug("Ignoring %s message on %s", msg.type, self._source)
        finally:
            await self._close()
        _LOGGER.info("%s subscription closed", self._source)


class NotificationListener:
    """Keeps a State up to date from device notifications.

    Args:
        client: Started Client, its session is used for the websockets.
        state: Cached state of the zone.
        ledger: Ledger shared with the services.
        services: Services used to query domains while polling.
        sources: Event sources to subscribe to.
        zone: Output zone notifications are filtered for.
        polling_interval: Seconds between polls while push is unavailable.
        debounce_window: Seconds after a local change during which
            notifications for the same domain are treated as echoes.
        max_reconnect_attempts: Consecutive failed connects before polling.
    """

    def __init__(
        self,
        client: Client,
        state: State,
        ledger: Ledger,
        services: Sequence[ServiceBase] = (),
        sources: Iterable[EventSource] = DEFAULT_EVENT_SOURCES,
        zone: str = MAIN_ZONE,
        polling_interval: float = DEFAULT_POLLING_INTERVAL,
        debounce_window: float = DEFAULT_DEBOUNCE_WINDOW,
        max_reconnect_attempts: int = 3,
        reconnect_delay: float = 0.5,
        max_reconnect_delay: float = 30.0,
    ) -> None:
        self.client = client
        self._state = state
        self._ledger = ledger
        self._services = list(services)
        self._zone = zone
        self.polling_interval = polling_interval
        self.debounce_window = debounce_window
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self._listen: list[EventListener] = []
        self._state_listen: list[StateListener] = []
        self._subscriptions = {
            EventSource(source): Subscription(self, EventSource(source)) for source in sources
        }
        self._started = False

        for service in self._services:
            service.set_reporter(self.apply)

    @property
    def subscriptions(self) -> dict[EventSource, Subscription]:
        return self._subscriptions

    def subscription_state(self, source: EventSource) -> SubscriptionState:
        return self._subscriptions[source].state

    def add_listener(self, listener: EventListener) -> None:
        self._listen.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        self._listen.remove(listener)

    @contextmanager
    def listen(self, listener: EventListener):
        self.add_listener(listener)
        try:
            yield self
        finally:
            self.remove_listener(listener)

    def on_change(self, domain: Domain | None, handler: ChangeHandler) -> Callable[[], None]:
        """Call ``handler(domain, value)`` for every change to *domain*.

        A domain of None registers for all domains. Returns a callable that
        removes the registration.
        """

        def listener(event: ChangeEvent) -> None:
            if domain is None or event.domain == domain:
                handler(event.domain, event.value)

        self.add_listener(listener)
        return lambda: self.remove_listener(listener)

    def on_state_change(self, listener: StateListener) -> Callable[[], None]:
        self._state_listen.append(listener)
        return lambda: self._state_listen.remove(listener)

    def _state_changed(self, source: EventSource, state: SubscriptionState) -> None:
        for listener in list(self._state_listen):
            try:
                listener(source, state)
            except Exception:
                _LOGGER.exception("State listener failed for %s", source)

    def _emit(self, event: ChangeEvent) -> None:
        for listener in list(self._listen):
            try:
                listener(event)
            except Exception:
                _LOGGER.exception("Change listener failed for %s", event.domain)

    async def apply(self, domain: Domain, value: Any) -> bool:
        """Reconcile one reported value, emitting an event if it changed."""
        if not await reconcile(self._state, self._ledger, domain, value, self.debounce_window):
            return False
        self._emit(ChangeEvent(domain, value))
        return True

    async def process(self, source: EventSource, frame: NotificationFrame) -> None:
        try:
            changes = parse_changes(frame, self._zone)
        except ParseError as exception:
            _LOGGER.warning("Dropping malformed %s on %s: %s", frame.method, source, exception)
            return
        for domain, value in changes:
            await self.apply(domain, value)

    async def handle_text(self, source: EventSource, data: str) -> None:
        """Process one websocket text frame; malformed frames are dropped."""
        _LOGGER.debug("Frame on %s: %s", source, data)
        try:
            frame = parse_frame(data)
        except ParseError as exception:
            _LOGGER.warning("Dropping malformed frame on %s: %s", source, exception)
            return
        if isinstance(frame, CommandResponse):
            _LOGGER.debug("Ignoring unsolicited response %s on %s", frame, source)
            return
        await self.process(source, frame)

    def _pollers(self, source: EventSource) -> list[ServiceBase]:
        pollers: dict[Domain, ServiceBase] = {}
        for service in self._services:
            if service.domain in source.domains and service.domain not in pollers:
                pollers[service.domain] = service
        return list(pollers.values())

    async def poll(self, source: EventSource) -> None:
        """Query every domain of *source* once and reconcile the results."""
        for service in self._pollers(source):
            try:
                changes = await service.poll()
            except (TransportError, DeviceError, ParseError) as exception:
                _LOGGER.warning("Polling %s failed: %s", service.domain, exception)
                continue
            for domain, value in changes:
                await self.apply(domain, value)

    async def start(self) -> None:
        if self._started:
            raise AudioControlException("Already started")
        self._started = True
        for subscription in self._subscriptions.values():
            subscription.start()

    async def stop(self) -> None:
        """Cancel every subscription and close its socket."""
        await asyncio.gather(*(s.stop() for s in self._subscriptions.values()))
        self._started = False

    async def __aenter__(self) -> "NotificationListener":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
