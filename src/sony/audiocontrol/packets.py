"""Request, response and notification frames for the Sony audio control protocol."""

import json
from typing import Any

import attr

from .exceptions import DeviceError, ParseError


MAIN_ZONE = ""
_MAIN_ZONE_ALIASES = frozenset({MAIN_ZONE, "extOutput:zone?zone=1"})


def is_main_zone(zone: str) -> bool:
    return zone in _MAIN_ZONE_ALIASES


def matches_zone(output: str | None, zone: str) -> bool:
    """Return True if a zone-scoped *output* value addresses *zone*."""
    if is_main_zone(zone):
        return output is None or output in _MAIN_ZONE_ALIASES
    return output == zone


@attr.s(slots=True, frozen=True)
class CommandRequest:
    """Represent a versioned command sent to a device service."""

    service: str = attr.ib()
    method: str = attr.ib()
    params: list = attr.ib(factory=list)
    version: str = attr.ib(default="1.0")
    id: int = attr.ib(default=1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "id": self.id,
            "params": self.params,
            "version": self.version,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @staticmethod
    def from_dict(service: str, data: dict[str, Any]) -> "CommandRequest":
        try:
            return CommandRequest(
                service,
                data["method"],
                list(data.get("params", [])),
                str(data.get("version", "1.0")),
                int(data.get("id", 1)),
            )
        except (KeyError, TypeError, ValueError) as exception:
            raise ParseError(f"Invalid request {data!r}") from exception


@attr.s(slots=True, frozen=True)
class CommandResponse:
    """Represent the answer to a CommandRequest."""

    id: int | None = attr.ib()
    result: list | None = attr.ib(default=None)
    error: list | None = attr.ib(default=None)

    def responds_to(self, request: CommandRequest) -> bool:
        return self.id == request.id

    def raise_for_error(self) -> list:
        """Return the result list or raise the matching DeviceError."""
        if self.error is not None:
            raise DeviceError.from_error(self.error)
        if self.result is None:
            raise DeviceError(code=-1, message="Response has neither result nor error")
        return self.result

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.error is not None:
            data["error"] = self.error
        else:
            data["result"] = self.result
        return data

    @staticmethod
    def from_dict(data: Any) -> "CommandResponse":
        if not isinstance(data, dict):
            raise DeviceError(code=-1, message=f"Unexpected response {data!r}")
        result = data.get("result")
        error = data.get("error")
        if error is not None and not isinstance(error, list):
            error = [-1, str(error)]
        if result is not None and not isinstance(result, list):
            result = [result]
        return CommandResponse(data.get("id"), result, error)


@attr.s(slots=True, frozen=True)
class NotificationFrame:
    """Represent a push notification received on a websocket."""

    method: str = attr.ib()
    params: list = attr.ib(factory=list)
    version: str = attr.ib(default="1.0")

    def to_dict(self) -> dict[str, Any]:
        return {"method": self.method, "params": self.params, "version": self.version}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def items(self) -> list[dict[str, Any]]:
        return flatten(self.params)


def flatten(values: list) -> list[dict[str, Any]]:
    """Return the objects of a params or result list.

    The device wraps objects in a nested list for some methods and not for
    others, both shapes are accepted. Raises ParseError for anything else.
    """
    items = []
    for value in values:
        if isinstance(value, list):
            items.extend(value)
        else:
            items.append(value)
    for item in items:
        if not isinstance(item, dict):
            raise ParseError(f"Unexpected item {item!r}")
    return items


def parse_frame(data: str | bytes) -> NotificationFrame | CommandResponse:
    """Decode a websocket text frame.

    Frames carrying an ``id`` answer a request, anything with a ``method`` is a
    notification. Raises ParseError for everything else.
    """
    try:
        decoded = json.loads(data)
    except ValueError as exception:
        raise ParseError(f"Frame is not json {data!r}") from exception

    if not isinstance(decoded, dict):
        raise ParseError(f"Frame is not an object {data!r}")

    if "method" in decoded:
        params = decoded.get("params", [])
        if not isinstance(params, list):
            raise ParseError(f"Invalid params in frame {data!r}")
        return NotificationFrame(decoded["method"], params, str(decoded.get("version", "1.0")))

    if "id" in decoded:
        return CommandResponse.from_dict(decoded)

    raise ParseError(f"Unexpected frame {data!r}")
