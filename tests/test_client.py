"""Tests for client.py: Client and ClientContext."""

import asyncio

import aiohttp
import pytest
from aiohttp import web

from sony.audiocontrol import (
    AudioControlException,
    CommandRequest,
    DeviceError,
    IllegalArgument,
    NoSuchMethod,
    NotConnectedException,
    TransportError,
)
from sony.audiocontrol.client import Client, ClientContext
from sony.audiocontrol.server import Server, ServerContext
from sony.audiocontrol.utils import PRIORITY_COMMAND


@pytest.fixture
async def server():
    s = Server("127.0.0.1", 0, "STR-DN1080")
    s.register_handler("system", "getPowerStatus", lambda **kwargs: [{"status": "active"}])
    async with ServerContext(s):
        yield s


# --- properties ---


def test_urls():
    c = Client("192.168.1.20", 54480)
    assert c.url("audio") == "http://192.168.1.20:54480/sony/audio"
    assert c.websocket_url("avContent") == "ws://192.168.1.20:54480/sony/avContent"


def test_session_missing():
    with pytest.raises(NotConnectedException):
        Client("localhost").session


async def test_request_not_started():
    with pytest.raises(NotConnectedException):
        await Client("localhost").request("system", "getPowerStatus")


async def test_start_twice():
    c = Client("localhost")
    async with ClientContext(c):
        with pytest.raises(AudioControlException):
            await c.start()
    assert not c.started


async def test_shared_session_is_not_closed():
    async with aiohttp.ClientSession() as session:
        c = Client("localhost", session=session)
        assert c.started
        async with ClientContext(c):
            pass
        assert not session.closed


def test_next_id_increments():
    c = Client("localhost")
    assert [c.next_id(), c.next_id(), c.next_id()] == [1, 2, 3]


# --- requests against a server ---


async def test_request_result(server):
    c = Client("127.0.0.1", server.port)
    async with ClientContext(c):
        result = await c.request("system", "getPowerStatus", [], "1.1")
    assert result == [{"status": "active"}]


async def test_request_unknown_method(server):
    c = Client("127.0.0.1", server.port)
    async with ClientContext(c):
        with pytest.raises(NoSuchMethod):
            await c.request("system", "getSWUpdateInfo")


async def test_request_device_error(server):
    def reject(params, **kwargs):
        raise IllegalArgument(f"bad {params}")

    server.register_handler("audio", "setAudioVolume", reject)
    c = Client("127.0.0.1", server.port)
    async with ClientContext(c):
        with pytest.raises(IllegalArgument) as info:
            await c.request("audio", "setAudioVolume", [{"volume": "x"}], "1.1")
    assert "volume" in info.value.message


async def test_request_raw_keeps_id(server):
    c = Client("127.0.0.1", server.port)
    async with ClientContext(c):
        request = CommandRequest("system", "getPowerStatus", [], "1.1", 42)
        response = await c.request_raw(request, priority=PRIORITY_COMMAND)
    assert response.responds_to(request)


async def test_multiple(server):
    c = Client("127.0.0.1", server.port)
    async with ClientContext(c):
        results = await asyncio.gather(
            c.request("system", "getPowerStatus", [], "1.1"),
            c.request("system", "getInterfaceInformation"),
        )
    assert results[0] == [{"status": "active"}]
    assert results[1][0]["modelName"] == "STR-DN1080"


async def test_request_timeout(speedy, server):
    async def slow(**kwargs):
        await asyncio.sleep(1)
        return []

    server.register_handler("audio", "getVolumeInformation", slow)
    c = Client("127.0.0.1", server.port)
    async with ClientContext(c):
        with pytest.raises(TransportError) as info:
            await c.request("audio", "getVolumeInformation")
    assert isinstance(info.value.cause, TimeoutError)


async def test_request_connection_refused():
    c = Client("127.0.0.1", 1)
    async with ClientContext(c):
        with pytest.raises(TransportError) as info:
            await c.request("system", "getPowerStatus")
    assert isinstance(info.value.cause, aiohttp.ClientError)


# --- misbehaving servers ---


async def test_request_http_error(aiohttp_server):
    async def failing(request):
        raise web.HTTPInternalServerError()

    app = web.Application()
    app.router.add_post("/sony/{service}", failing)
    test_server = await aiohttp_server(app)

    c = Client(test_server.host, test_server.port)
    async with ClientContext(c):
        with pytest.raises(DeviceError) as info:
            await c.request("system", "getPowerStatus")
    assert info.value.code == 500


async def test_request_invalid_json(aiohttp_server):
    async def garbage(request):
        return web.Response(text="<html>nope</html>")

    app = web.Application()
    app.router.add_post("/sony/{service}", garbage)
    test_server = await aiohttp_server(app)

    c = Client(test_server.host, test_server.port)
    async with ClientContext(c):
        with pytest.raises(DeviceError) as info:
            await c.request("system", "getPowerStatus")
    assert info.value.code == -1
