"""Enumerations for the Sony audio control protocol."""

import enum


class Domain(enum.StrEnum):
    """Independently controllable aspect of a receiver zone."""

    POWER = "power"
    VOLUME = "volume"
    MUTE = "mute"
    INPUT = "input"
    SOUND_FIELD = "soundField"


class EventSource(enum.StrEnum):
    """Websocket library the device publishes notifications on."""

    AUDIO = "audio"
    AV_CONTENT = "avContent"
    SYSTEM = "system"

    @property
    def domains(self) -> tuple[Domain, ...]:
        return _SOURCE_DOMAINS[self]


_SOURCE_DOMAINS: dict[EventSource, tuple[Domain, ...]] = {
    EventSource.AUDIO: (Domain.VOLUME, Domain.MUTE, Domain.SOUND_FIELD),
    EventSource.AV_CONTENT: (Domain.POWER, Domain.INPUT),
    EventSource.SYSTEM: (Domain.POWER,),
}


class SubscriptionState(enum.Enum):
    DISCONNECTED = enum.auto()
    LIVE = enum.auto()
    POLLING = enum.auto()


class ErrorCodes(enum.IntEnum):
    ANY = 1
    TIMEOUT = 2
    ILLEGAL_ARGUMENT = 3
    ILLEGAL_REQUEST = 5
    ILLEGAL_STATE = 7
    NO_SUCH_METHOD = 12
    UNSUPPORTED_VERSION = 14
    UNSUPPORTED_OPERATION = 15

    @classmethod
    def from_int(cls, value: int) -> "ErrorCodes | int":
        try:
            return cls(value)
        except ValueError:
            return value
