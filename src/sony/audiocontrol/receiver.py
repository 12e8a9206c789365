"""Receiver: wires client, services and listener together from a ReceiverConfig.

Usage::

    async with Receiver(ReceiverConfig("192.168.1.20")) as receiver:
        receiver.on_change(Domain.VOLUME, print)
        await receiver.volume.set_state(30)
"""

import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from .client import Client
from .config import ReceiverConfig
from .enums import Domain
from .exceptions import DeviceError, ParseError, TransportError
from .ledger import Ledger
from .listener import ChangeHandler, NotificationListener
from .packets import flatten
from .services import InputService, PowerService, ServiceBase, SoundFieldService, VolumeService
from .state import State

_LOGGER = logging.getLogger(__name__)


class Receiver:
    """All services of one receiver zone plus its notification listener.

    Args:
        config: Validated configuration.
        session: Optional aiohttp session shared with the caller.
    """

    def __init__(
        self, config: ReceiverConfig, session: aiohttp.ClientSession | None = None
    ) -> None:
        self._config = config
        self._client = Client(config.host, config.port, session)
        self._ledger = Ledger()
        self._state = State(config.zone)

        common: dict[str, Any] = {
            "zone": config.zone,
            "debounce_window": config.debounce_window,
        }
        _LOGGER.debug("Creating services for %s", config.name)
        self.power = PowerService(self._client, self._state, self._ledger, **common)
        self.volume = VolumeService(
            self._client, self._state, self._ledger, max_volume=config.max_volume, **common
        )
        self.inputs = [
            InputService(self._client, self._state, self._ledger, entry, config.inputs, **common)
            for entry in config.inputs
        ]
        self.sound_fields = [
            SoundFieldService(
                self._client, self._state, self._ledger, entry, config.sound_fields, **common
            )
            for entry in config.sound_fields
        ]

        self.listener = NotificationListener(
            self._client,
            self._state,
            self._ledger,
            self.services,
            sources=config.event_sources,
            zone=config.zone,
            polling_interval=config.polling_interval,
            debounce_window=config.debounce_window,
        )

    @property
    def config(self) -> ReceiverConfig:
        return self._config

    @property
    def client(self) -> Client:
        return self._client

    @property
    def state(self) -> State:
        return self._state

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def services(self) -> list[ServiceBase]:
        return [self.power, self.volume, *self.inputs, *self.sound_fields]

    def on_change(self, domain: Domain | None, handler: ChangeHandler) -> Callable[[], None]:
        return self.listener.on_change(domain, handler)

    async def set_network_standby(self) -> None:
        """Apply the network standby preference; failures are only logged."""
        value = "on" if self._config.enable_network_standby else "off"
        try:
            await self._client.request(
                "system",
                "setPowerSettings",
                [{"settings": [{"target": "quickStartMode", "value": value}]}],
                "1.0",
            )
        except (TransportError, DeviceError) as exception:
            _LOGGER.error("Setting network standby failed: %s", exception)
            return
        _LOGGER.info("Network standby is currently %s", value)

    async def get_model_name(self) -> str | None:
        try:
            result = await self._client.request("system", "getInterfaceInformation", [], "1.0")
            for item in flatten(result):
                if "modelName" in item:
                    _LOGGER.debug("Model name is %s", item["modelName"])
                    return item["modelName"]
        except (TransportError, DeviceError, ParseError) as exception:
            _LOGGER.error("Querying interface information failed: %s", exception)
        return None

    async def start(self) -> None:
        await self._client.start()
        await self.set_network_standby()
        _LOGGER.info("Starting notification subscriptions")
        await self.listener.start()

    async def stop(self) -> None:
        await self.listener.stop()
        await self._client.stop()

    async def __aenter__(self) -> "Receiver":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
