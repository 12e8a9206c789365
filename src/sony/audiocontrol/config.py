"""Receiver configuration.

The accessory platform hands over a plain dict (as found in its config file);
``ReceiverConfig.from_dict`` turns it into a validated, immutable object. Times
in that dict are milliseconds, on ``ReceiverConfig`` they are seconds.
"""

from typing import Any

import attr

from .dataclasses import DEFAULT_SOUND_FIELDS, DeviceEndpoint, InputEntry, SoundFieldEntry
from .enums import EventSource
from .exceptions import InvalidConfiguration
from .packets import MAIN_ZONE

DEFAULT_PORT = 10000
DEFAULT_POLLING_INTERVAL = 10.0
DEFAULT_DEBOUNCE_WINDOW = 1.0
DEFAULT_MAX_VOLUME = 100
DEFAULT_EVENT_SOURCES = (EventSource.AUDIO, EventSource.AV_CONTENT)


def _positive(instance, attribute, value) -> None:
    if value <= 0:
        raise InvalidConfiguration(f"{attribute.name} must be positive, got {value}")


def _not_negative(instance, attribute, value) -> None:
    if value < 0:
        raise InvalidConfiguration(f"{attribute.name} must not be negative, got {value}")


def _unique(key: str):
    def validator(instance, attribute, value) -> None:
        seen = set()
        for entry in value:
            item = getattr(entry, key)
            if item in seen:
                raise InvalidConfiguration(f"Duplicate {key} {item!r} in {attribute.name}")
            seen.add(item)

    return validator


def _port(instance, attribute, value) -> None:
    if not 0 < value < 65536:
        raise InvalidConfiguration(f"Invalid port {value}")


def _host(instance, attribute, value) -> None:
    if not value:
        raise InvalidConfiguration("A host is required")


@attr.s(frozen=True)
class ReceiverConfig:
    """Everything the core reads from the configuration.

    Args:
        host: Hostname or IP address of the receiver.
        port: Port of the receiver's web api.
        zone: Output zone uri, empty for the main zone.
        polling_interval: Seconds between queries while push is unavailable.
        debounce_window: Seconds after a local change during which
            notifications for the same domain are treated as echoes.
    """

    host: str = attr.ib(validator=_host)
    port: int = attr.ib(default=DEFAULT_PORT, converter=int, validator=_port)
    zone: str = attr.ib(default=MAIN_ZONE)
    name: str = attr.ib(default="Receiver")
    polling_interval: float = attr.ib(
        default=DEFAULT_POLLING_INTERVAL, converter=float, validator=_positive
    )
    debounce_window: float = attr.ib(
        default=DEFAULT_DEBOUNCE_WINDOW, converter=float, validator=_not_negative
    )
    max_volume: int = attr.ib(default=DEFAULT_MAX_VOLUME, converter=int, validator=_positive)
    inputs: tuple[InputEntry, ...] = attr.ib(
        default=(), converter=tuple, validator=_unique("uri")
    )
    sound_fields: tuple[SoundFieldEntry, ...] = attr.ib(
        default=DEFAULT_SOUND_FIELDS, converter=tuple, validator=_unique("value")
    )
    enable_network_standby: bool = attr.ib(default=True)
    event_sources: tuple[EventSource, ...] = attr.ib(
        default=DEFAULT_EVENT_SOURCES, converter=lambda v: tuple(EventSource(s) for s in v)
    )
    manufacturer: str = attr.ib(default="Sony")
    model: str = attr.ib(default="STR-DN1080")
    serial_number: str = attr.ib(default="Serial number 1")

    @property
    def endpoint(self) -> DeviceEndpoint:
        return DeviceEndpoint(self.host, self.port, self.zone)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ReceiverConfig":
        """Build a configuration from the accessory platform's dict."""
        try:
            info = data.get("accessoryInformation") or {}
            kwargs: dict[str, Any] = {
                "host": data.get("ip"),
                "port": data.get("port") or DEFAULT_PORT,
                "zone": data.get("outputZone") or MAIN_ZONE,
                "name": data.get("name") or "Receiver",
                "max_volume": data.get("maxVolume") or DEFAULT_MAX_VOLUME,
                "enable_network_standby": data.get("enableNetworkStandby") is not False,
                "inputs": [InputEntry.from_dict(entry) for entry in data.get("inputs") or []],
                "manufacturer": info.get("manufacturer") or "Sony",
                "model": info.get("model") or "STR-DN1080",
                "serial_number": info.get("serialNumber") or "Serial number 1",
            }
            if data.get("soundFields"):
                kwargs["sound_fields"] = [
                    SoundFieldEntry.from_dict(entry) for entry in data["soundFields"]
                ]
            if data.get("pollingInterval") is not None:
                kwargs["polling_interval"] = float(data["pollingInterval"]) / 1000
            if data.get("debounceWindow") is not None:
                kwargs["debounce_window"] = float(data["debounceWindow"]) / 1000
            if data.get("eventSources"):
                kwargs["event_sources"] = data["eventSources"]
            return ReceiverConfig(**kwargs)
        except InvalidConfiguration:
            raise
        except (AttributeError, TypeError, ValueError) as exception:
            raise InvalidConfiguration(str(exception)) from exception
