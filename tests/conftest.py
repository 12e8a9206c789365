"""Shared test fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sony.audiocontrol.client import Client, ClientContext
from sony.audiocontrol.dummy import DummyServer
from sony.audiocontrol.ledger import Ledger
from sony.audiocontrol.server import ServerContext
from sony.audiocontrol.state import State


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_client():
    """Factory fixture to create a mocked Client."""

    def _make_client():
        client = MagicMock(spec=Client)
        client.request = AsyncMock()
        client.request_raw = AsyncMock()
        client.started = True
        return client

    return _make_client


@pytest.fixture
def make_service(make_client, clock):
    """Factory fixture to create a service bound to a mocked Client."""

    def _make_service(cls, *args, zone="", **kwargs):
        client = make_client()
        state = State(zone)
        ledger = Ledger(clock)
        return cls(client, state, ledger, *args, zone=zone, **kwargs)

    return _make_service


@pytest.fixture
async def dummy():
    s = DummyServer("127.0.0.1", 0)
    async with ServerContext(s):
        yield s


@pytest.fixture
async def client(dummy):
    c = Client("127.0.0.1", dummy.port)
    async with ClientContext(c):
        yield c


@pytest.fixture
def speedy(mocker):
    mocker.patch("sony.audiocontrol.client._REQUEST_TIMEOUT", new=0.5)
    mocker.patch("sony.audiocontrol.client._REQUEST_THROTTLE", new=0.0)
    mocker.patch("sony.audiocontrol.listener._SUBSCRIBE_TIMEOUT", new=0.5)
