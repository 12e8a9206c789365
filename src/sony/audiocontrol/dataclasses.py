"""Data classes for the Sony audio control protocol."""

import time
from typing import Any
from urllib.parse import urlsplit

import attr

from .enums import Domain
from .exceptions import InvalidConfiguration, ParseError
from .packets import MAIN_ZONE


@attr.s(slots=True, frozen=True)
class DeviceEndpoint:
    """Address of a receiver zone.

    ``zone`` is the output uri commands are scoped to, the empty string
    addresses the main zone.
    """

    host: str = attr.ib()
    port: int = attr.ib(default=10000)
    zone: str = attr.ib(default=MAIN_ZONE)

    @staticmethod
    def from_base_url(base_url: str, zone: str = MAIN_ZONE) -> "DeviceEndpoint":
        """Create an endpoint from a ``http://host:port/sony`` style url."""
        parts = urlsplit(base_url)
        if not parts.hostname:
            raise ValueError(f"No host in {base_url!r}")
        return DeviceEndpoint(parts.hostname, parts.port or 80, zone)


@attr.s(slots=True, frozen=True)
class ChangeEvent:
    """A reconciled state change reported to observers."""

    domain: Domain = attr.ib()
    value: Any = attr.ib()
    timestamp: float = attr.ib(factory=time.time)


def _entry_field(data: dict, key: str, kind: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise InvalidConfiguration(f"{kind} entry {data!r} is missing '{key}'")
    return value


@attr.s(slots=True, frozen=True)
class InputEntry:
    name: str = attr.ib()
    uri: str = attr.ib()

    @staticmethod
    def from_dict(data: dict) -> "InputEntry":
        return InputEntry(_entry_field(data, "name", "Input"), _entry_field(data, "uri", "Input"))


@attr.s(slots=True, frozen=True)
class SoundFieldEntry:
    name: str = attr.ib()
    value: str = attr.ib()

    @staticmethod
    def from_dict(data: dict) -> "SoundFieldEntry":
        return SoundFieldEntry(
            _entry_field(data, "name", "Sound field"),
            _entry_field(data, "value", "Sound field"),
        )


DEFAULT_SOUND_FIELDS = (
    SoundFieldEntry("Surround Mode", "dolbySurround"),
    SoundFieldEntry("Stereo Mode", "2chStereo"),
)


@attr.s
class VolumeInformation:
    """Volume level and mute flag of one output."""

    output: str = attr.ib()
    volume: int = attr.ib()
    mute: bool = attr.ib()

    @staticmethod
    def from_dict(data: dict) -> "VolumeInformation":
        try:
            volume = int(data["volume"])
        except (KeyError, TypeError, ValueError) as exception:
            raise ParseError(f"Invalid volume information {data!r}") from exception
        mute = data.get("mute")
        if isinstance(mute, str):
            muted = mute == "on"
        else:
            muted = bool(mute)
        return VolumeInformation(data.get("output", MAIN_ZONE), volume, muted)

    def to_dict(self) -> dict[str, Any]:
        return {
            "output": self.output,
            "volume": self.volume,
            "mute": "on" if self.mute else "off",
        }
