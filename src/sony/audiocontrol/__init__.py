"""Control Sony audio/video receivers through their audio control web api."""

from .config import (
    DEFAULT_DEBOUNCE_WINDOW,
    DEFAULT_EVENT_SOURCES,
    DEFAULT_MAX_VOLUME,
    DEFAULT_POLLING_INTERVAL,
    DEFAULT_PORT,
    ReceiverConfig,
)
from .dataclasses import (
    DEFAULT_SOUND_FIELDS,
    ChangeEvent,
    DeviceEndpoint,
    InputEntry,
    SoundFieldEntry,
    VolumeInformation,
)
from .enums import Domain, ErrorCodes, EventSource, SubscriptionState
from .exceptions import (
    AudioControlException,
    DeviceError,
    IllegalArgument,
    IllegalRequest,
    IllegalState,
    InvalidArgument,
    InvalidConfiguration,
    NoSuchMethod,
    NotConnectedException,
    ParseError,
    TransportError,
    UnsupportedOperation,
    UnsupportedVersion,
)
from .packets import (
    MAIN_ZONE,
    CommandRequest,
    CommandResponse,
    NotificationFrame,
    flatten,
    matches_zone,
    parse_frame,
)

__all__ = [
    "DEFAULT_DEBOUNCE_WINDOW",
    "DEFAULT_EVENT_SOURCES",
    "DEFAULT_MAX_VOLUME",
    "DEFAULT_POLLING_INTERVAL",
    "DEFAULT_PORT",
    "DEFAULT_SOUND_FIELDS",
    "MAIN_ZONE",
    "AudioControlException",
    "ChangeEvent",
    "CommandRequest",
    "CommandResponse",
    "DeviceEndpoint",
    "DeviceError",
    "Domain",
    "ErrorCodes",
    "EventSource",
    "IllegalArgument",
    "IllegalRequest",
    "IllegalState",
    "InputEntry",
    "InvalidArgument",
    "InvalidConfiguration",
    "NoSuchMethod",
    "NotConnectedException",
    "NotificationFrame",
    "ParseError",
    "ReceiverConfig",
    "SoundFieldEntry",
    "SubscriptionState",
    "TransportError",
    "UnsupportedOperation",
    "UnsupportedVersion",
    "VolumeInformation",
    "flatten",
    "matches_zone",
    "parse_frame",
]
