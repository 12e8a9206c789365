"""Async HTTP client for the Sony audio control api.

Provides Client, which posts versioned json requests to the device's service
endpoints and turns the answers into results or typed failures. Use
ClientContext as an async context manager to handle the session lifecycle.
"""

import asyncio
import contextlib
import itertools
import json
import logging

import aiohttp

from .exceptions import (
    AudioControlException,
    DeviceError,
    NotConnectedException,
    TransportError,
)
from .packets import CommandRequest, CommandResponse
from .utils import PRIORITY_QUERY, Throttle

_LOGGER = logging.getLogger(__name__)
_REQUEST_TIMEOUT = 5.0
_REQUEST_THROTTLE = 0.05


class Client:
    """HTTP client for one receiver.

    Requests are never retried here, callers decide on retry policy.

    Args:
        host: Hostname or IP address of the receiver.
        port: Port of the web api (default 10000).
        session: Optional aiohttp session. If omitted one is created on
            start() and closed on stop().
    """

    def __init__(
        self, host: str, port: int = 10000, session: aiohttp.ClientSession | None = None
    ) -> None:
        self._host = host
        self._port = port
        self._session = session
        self._owns_session = session is None
        self._started = session is not None
        self._ids = itertools.count(1)
        self._throttle = Throttle(_REQUEST_THROTTLE)

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def started(self) -> bool:
        return self._started

    @property
    def session(self) -> aiohttp.ClientSession:
        if not self._session:
            raise NotConnectedException("Session missing")
        return self._session

    def url(self, service: str) -> str:
        return f"http://{self._host}:{self._port}/sony/{service}"

    def websocket_url(self, source: str) -> str:
        return f"ws://{self._host}:{self._port}/sony/{source}"

    async def start(self) -> None:
        if self._started and self._owns_session:
            raise AudioControlException("Already started")
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._started = True
        _LOGGER.debug("Client started for %s:%d", self._host, self._port)

    async def stop(self) -> None:
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None
        self._started = False

    def next_id(self) -> int:
        return next(self._ids)

    async def request_raw(
        self,
        request: CommandRequest,
        *,
        priority: int = PRIORITY_QUERY,
        timeout: float | None = None,
    ) -> CommandResponse:
        """Post *request* and return the decoded answer.

        Raises TransportError when the device can't be reached and DeviceError
        when it answers with a failing http status or an undecodable body.
        """
        if not self._started or not self._session:
            raise NotConnectedException()
        session = self._session  # keep copy around if stopped by another task

        await self._throttle.get(priority)

        _LOGGER.debug("Requesting %s", request)
        try:
            async with asyncio.timeout(timeout or _REQUEST_TIMEOUT):
                async with session.post(self.url(request.service), json=request.to_dict()) as resp:
                    if not 200 <= resp.status < 300:
                        raise DeviceError(code=resp.status, message=resp.reason)
                    body = await resp.text()
        except (aiohttp.ClientError, TimeoutError, OSError) as exception:
            raise TransportError(exception) from exception

        try:
            data = json.loads(body)
        except ValueError as exception:
            raise DeviceError(code=-1, message=f"Invalid json {body!r}") from exception

        response = CommandResponse.from_dict(data)
        _LOGGER.debug("Response %s", response)
        return response

    async def request(
        self,
        service: str,
        method: str,
        params: list | None = None,
        version: str = "1.0",
        *,
        priority: int = PRIORITY_QUERY,
        timeout: float | None = None,
    ) -> list:
        """Call *method* on *service* and return the result list.

        Raises DeviceError subclasses for error answers.
        """
        request = CommandRequest(service, method, params or [], version, self.next_id())
        response = await self.request_raw(request, priority=priority, timeout=timeout)
        return response.raise_for_error()


class ClientContext:
    """Async context manager that starts and stops a Client.

    Usage::

        async with ClientContext(Client("192.168.1.10")) as c:
            result = await c.request("system", "getPowerStatus", [], "1.1")
    """

    def __init__(self, client: Client):
        self._client = client

    async def __aenter__(self) -> Client:
        await self._client.start()
        return self._client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        with contextlib.suppress(aiohttp.ClientError):
            await self._client.stop()
