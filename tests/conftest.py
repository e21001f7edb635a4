import asyncio

import pytest

from fajax.config import NetworkConfig
from fajax.cookies import CookieJar
from fajax.models import json_response
from fajax.network import Network
from fajax.policy import FixedDelay, FixedDrop


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class EchoHandler:
    """Answers every request with 200 and records what it saw."""

    def __init__(self, status=200, headers=None, delay_ms=0):
        self.status = status
        self.headers = headers or {}
        self.delay_ms = delay_ms
        self.requests = []

    def handle_request(self, request, callback):
        self.requests.append(request)
        response = json_response(self.status, self.status < 400, "echo",
                                 {"url": request.url, "body": request.body}, self.headers)
        if self.delay_ms:
            asyncio.get_running_loop().call_later(self.delay_ms / 1000, callback, response)
        else:
            callback(response)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def jar(clock):
    return CookieJar(clock=clock)


@pytest.fixture
def config():
    return NetworkConfig(min_delay_ms=1, max_delay_ms=5, drop_rate=0.0, no_route_delay_ms=1)


@pytest.fixture
def network(config):
    return Network(config, delay_policy=FixedDelay(1), drop_policy=FixedDrop(default=False))


@pytest.fixture
def echo(network):
    handler = EchoHandler()
    network.register_server("/api/echo", handler)
    return handler
