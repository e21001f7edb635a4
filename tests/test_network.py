import asyncio

import pytest

from fajax.config import NetworkConfig
from fajax.errors import NetworkDropped, NoRoute
from fajax.models import Method, RequestDescriptor, json_response
from fajax.network import Network, NetworkStats
from fajax.policy import FixedDrop

from .conftest import EchoHandler


async def dispatch(network, url, method=Method.GET):
    loop = asyncio.get_running_loop()
    outcome = loop.create_future()
    network.dispatch(
        RequestDescriptor(method=method, url=url),
        lambda response: outcome.set_result(("ok", response)),
        lambda error: outcome.set_result(("error", error)),
    )
    return await asyncio.wait_for(outcome, 2)


@pytest.mark.asyncio
async def test_delivers_to_matching_server(network, echo):
    kind, response = await dispatch(network, "/api/echo/ping?x=1")
    assert kind == "ok"
    assert response.status == 200
    assert echo.requests[0].url == "/api/echo/ping?x=1"
    assert network.get_stats() == NetworkStats(1, 1, 0, 1, 1, 0)


@pytest.mark.asyncio
async def test_drop_rate_one_fails_every_request(echo):
    network = Network(NetworkConfig(min_delay_ms=1, max_delay_ms=2, drop_rate=1.0))
    network.register_server("/api/echo", echo)
    for i in range(5):
        kind, error = await dispatch(network, "/api/echo")
        assert kind == "error"
        assert isinstance(error, NetworkDropped)
        assert error.status == 0
        assert error.reason == "dropped"
        stats = network.get_stats()
        assert stats.requests_dropped == i + 1
        assert stats.requests_delivered == 0
    assert echo.requests == []


@pytest.mark.asyncio
async def test_drop_rate_zero_always_reaches_server():
    network = Network(NetworkConfig(min_delay_ms=0, max_delay_ms=3, drop_rate=0.0))
    handler = EchoHandler()
    network.register_server("/api/echo", handler)
    results = await asyncio.gather(*(dispatch(network, f"/api/echo/{i}") for i in range(20)))
    assert all(kind == "ok" for kind, _ in results)
    assert len(handler.requests) == 20


@pytest.mark.asyncio
async def test_no_route(network, echo):
    kind, error = await dispatch(network, "/api/unknown")
    assert kind == "error"
    assert isinstance(error, NoRoute)
    assert error.status == 404
    assert error.message == "server not found"
    assert error.reason == "no-route"
    assert network.get_stats().requests_dropped == 1


@pytest.mark.asyncio
async def test_response_leg_drop_after_server_processed(network, echo):
    network.drop_policy = FixedDrop([False, True])
    kind, error = await dispatch(network, "/api/echo", Method.POST)
    assert kind == "error"
    assert isinstance(error, NetworkDropped)
    # the server did the work even though the client never heard back
    assert len(echo.requests) == 1
    assert network.get_stats() == NetworkStats(1, 1, 0, 1, 0, 1)


@pytest.mark.asyncio
async def test_handler_error_status_is_still_a_success_leg(network):
    network.register_server("/api/echo", EchoHandler(status=409))
    kind, response = await dispatch(network, "/api/echo")
    assert kind == "ok"
    assert response.status == 409
    assert response.status_text == "Conflict"


@pytest.mark.asyncio
async def test_longest_prefix_wins(network):
    broad, narrow = EchoHandler(), EchoHandler()
    network.register_server("/api/tasks/special", narrow)
    network.register_server("/api", broad)
    await dispatch(network, "/api/tasks/special/1")
    await dispatch(network, "/api/tasks/1")
    assert [r.url for r in narrow.requests] == ["/api/tasks/special/1"]
    assert [r.url for r in broad.requests] == ["/api/tasks/1"]


def test_route_request_without_match(network):
    assert network.route_request(RequestDescriptor(method=Method.GET, url="/nowhere")) is None


@pytest.mark.asyncio
async def test_crashing_handler_answers_500(network):
    class Broken:
        def handle_request(self, request, callback):
            raise RuntimeError("boom")

    network.register_server("/api/broken", Broken())
    kind, response = await dispatch(network, "/api/broken")
    assert kind == "ok"
    assert response.status == 500


@pytest.mark.asyncio
async def test_second_handler_callback_is_ignored(network):
    class Chatty:
        def handle_request(self, request, callback):
            callback(json_response(200, True, "first"))
            callback(json_response(500, False, "second"))

    network.register_server("/api/chatty", Chatty())
    kind, response = await dispatch(network, "/api/chatty")
    await asyncio.sleep(0.02)
    assert response.status == 200
    assert network.get_stats().responses_sent == 1


@pytest.mark.asyncio
async def test_fixed_delay_is_applied_on_both_legs(echo):
    network = Network(NetworkConfig(min_delay_ms=30, max_delay_ms=30, drop_rate=0.0))
    network.register_server("/api/echo", echo)
    loop = asyncio.get_running_loop()
    started = loop.time()
    await dispatch(network, "/api/echo")
    elapsed = loop.time() - started
    assert elapsed >= 0.03
    assert elapsed < 1.0


def test_update_config(network):
    network.update_config(drop_rate=0.5, max_delay_ms=100)
    assert network.config.drop_rate == 0.5
    assert network.config.max_delay_ms == 100


def test_invalid_update_keeps_old_config(network):
    before = network.config
    with pytest.raises(ValueError):
        network.update_config(min_delay_ms=50, max_delay_ms=10)
    with pytest.raises(ValueError):
        network.update_config(drop_rate=2)
    assert network.config is before


@pytest.mark.asyncio
async def test_reset_stats(network, echo):
    await dispatch(network, "/api/echo")
    snapshot = network.get_stats()
    network.reset_stats()
    assert network.get_stats() == NetworkStats()
    assert snapshot.requests_sent == 1


def test_stats_format():
    text = NetworkStats(3, 2, 1, 2, 2, 0).format(0.2)
    assert "Requests: 3 sent, 2 delivered, 1 dropped" in text
    assert "Responses: 2 sent, 2 delivered, 0 dropped" in text
    assert "Drop rate: 20.0%" in text


def test_default_policy_is_seeded():
    network = Network(NetworkConfig(seed=5))
    other = Network(NetworkConfig(seed=5))
    assert [network.delay_policy.next_delay(0, 999) for _ in range(10)] == \
        [other.delay_policy.next_delay(0, 999) for _ in range(10)]
