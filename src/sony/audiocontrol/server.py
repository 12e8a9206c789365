"""Minimal device side of the audio control api.

Serves json requests on ``/sony/{service}`` and notification websockets on
the same path. Handlers are registered per (service, method).
"""

import asyncio
import contextlib
import json
import logging
from collections.abc import Awaitable, Callable

from aiohttp import WSMsgType, web

from .enums import ErrorCodes
from .exceptions import DeviceError, ParseError
from .packets import CommandRequest, CommandResponse, NotificationFrame

_LOGGER = logging.getLogger(__name__)

Handler = Callable[..., list | Awaitable[list]]

NOTIFICATIONS: dict[str, tuple[str, ...]] = {
    "audio": ("notifyVolumeInformation", "notifySettingsUpdate"),
    "avContent": ("notifyPlayingContentInfo", "notifyExternalTerminalStatus"),
    "system": ("notifyPowerStatus",),
}


class Server:
    """Simulated device answering registered methods.

    Args:
        host: Bind address.
        port: Port to listen on, 0 picks a free one.
        model: Model name reported by getInterfaceInformation.
    """

    def __init__(self, host: str, port: int, model: str) -> None:
        self._host = host
        self._port = port
        self._model = model
        self._handlers: dict[tuple[str, str], Handler] = {}
        self._sockets: dict[str, dict[web.WebSocketResponse, set[str]]] = {}
        self._runner: web.AppRunner | None = None
        self.push_sources: set[str] = set(NOTIFICATIONS)

        self.register_handler("system", "getInterfaceInformation", self.get_interface_information)

    @property
    def model(self) -> str:
        return self._model

    @property
    def port(self) -> int:
        if self._runner and self._runner.addresses:
            return self._runner.addresses[0][1]
        return self._port

    def register_handler(self, service: str, method: str, handler: Handler) -> None:
        self._handlers[(service, method)] = handler

    def get_interface_information(self, **kwargs) -> list:
        return [
            {
                "productCategory": "homeTheaterSystem",
                "productName": self._model,
                "modelName": self._model,
                "interfaceVersion": "1.0.0",
            }
        ]

    async def process_request(self, request: CommandRequest) -> CommandResponse:
        handler = self._handlers.get((request.service, request.method))
        if handler is None:
            return CommandResponse(
                request.id, error=[ErrorCodes.NO_SUCH_METHOD, request.method]
            )
        try:
            result = handler(params=request.params, version=request.version)
            if asyncio.iscoroutine(result):
                result = await result
        except DeviceError as exception:
            return CommandResponse(request.id, error=[exception.code, exception.message])
        return CommandResponse(request.id, result=result)

    async def _handle_post(self, request: web.Request) -> web.Response:
        service = request.match_info["service"]
        try:
            command = CommandRequest.from_dict(service, await request.json())
        except (ValueError, ParseError):
            raise web.HTTPBadRequest()
        _LOGGER.debug("Request %s", command)
        response = await self.process_request(command)
        return web.json_response(response.to_dict())

    async def _handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        source = request.match_info["service"]
        if source not in self.push_sources:
            raise web.HTTPNotFound()

        ws = web.WebSocketResponse()
        await ws.prepare(request)
        sockets = self._sockets.setdefault(source, {})
        sockets[ws] = set()
        try:
            async for msg in ws:
                if msg.type is not WSMsgType.TEXT:
                    continue
                try:
                    command = CommandRequest.from_dict(source, json.loads(msg.data))
                except (ValueError, ParseError):
                    _LOGGER.warning("Invalid request %s", msg.data)
                    continue
                if command.method == "switchNotifications":
                    response = self._switch_notifications(source, ws, command)
                else:
                    response = CommandResponse(
                        command.id, error=[ErrorCodes.NO_SUCH_METHOD, command.method]
                    )
                await ws.send_str(json.dumps(response.to_dict()))
        finally:
            sockets.pop(ws, None)
        return ws

    def _switch_notifications(
        self, source: str, ws: web.WebSocketResponse, command: CommandRequest
    ) -> CommandResponse:
        available = NOTIFICATIONS.get(source, ())
        enabled = self._sockets[source][ws]
        for param in command.params:
            for item in param.get("enabled", []):
                if item.get("name") in available:
                    enabled.add(item["name"])
            for item in param.get("disabled", []):
                enabled.discard(item.get("name"))
        return CommandResponse(
            command.id,
            result=[
                {
                    "enabled": [{"name": n, "version": "1.0"} for n in available if n in enabled],
                    "disabled": [
                        {"name": n, "version": "1.0"} for n in available if n not in enabled
                    ],
                }
            ],
        )

    async def _handle(self, request: web.Request) -> web.StreamResponse:
        if request.method == "GET":
            return await self._handle_websocket(request)
        return await self._handle_post(request)

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("*", "/sony/{service}", self._handle)
        app.on_shutdown.append(self._on_shutdown)
        return app

    async def _on_shutdown(self, app: web.Application) -> None:
        await self.disconnect()

    @property
    def subscribers(self) -> int:
        return sum(len(sockets) for sockets in self._sockets.values())

    async def notify(self, source: str, method: str, params: list) -> None:
        """Push a notification to every socket of *source* that enabled it."""
        frame = NotificationFrame(method, params).to_json()
        for ws, enabled in list(self._sockets.get(source, {}).items()):
            if method in enabled and not ws.closed:
                await ws.send_str(frame)

    async def send_raw(self, source: str, data: str) -> None:
        for ws in list(self._sockets.get(source, {})):
            if not ws.closed:
                await ws.send_str(data)

    async def disconnect(self, source: str | None = None) -> None:
        """Close the notification sockets of *source*, or of all sources."""
        for name, sockets in self._sockets.items():
            if source is None or name == source:
                for ws in list(sockets):
                    await ws.close()

    async def start(self) -> None:
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        _LOGGER.info("Serving on %s:%d", self._host, self.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None


class ServerContext:
    def __init__(self, server: Server):
        self._server = server

    async def __aenter__(self) -> Server:
        await self._server.start()
        return self._server

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        with contextlib.suppress(ConnectionError):
            await self._server.stop()
