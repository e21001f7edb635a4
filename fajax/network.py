import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .config import MESSAGES, STATUS, NetworkConfig
from .errors import NetworkDropped, NoRoute, TransportError
from .handler import ServerHandler
from .models import RequestDescriptor, ResponseDescriptor, json_response
from .policy import DelayPolicy, DropPolicy, RandomPolicy

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[ResponseDescriptor], None]
ErrorCallback = Callable[[TransportError], None]


@dataclass
class NetworkStats:
    requests_sent: int = 0
    requests_delivered: int = 0
    requests_dropped: int = 0
    responses_sent: int = 0
    responses_delivered: int = 0
    responses_dropped: int = 0

    def snapshot(self) -> "NetworkStats":
        return dataclasses.replace(self)

    def format(self, drop_rate: Optional[float] = None) -> str:
        lines = [
            "=== Network Statistics ===",
            f"Requests: {self.requests_sent} sent, {self.requests_delivered} delivered, "
            f"{self.requests_dropped} dropped",
            f"Responses: {self.responses_sent} sent, {self.responses_delivered} delivered, "
            f"{self.responses_dropped} dropped",
        ]
        if drop_rate is not None:
            lines.append(f"Drop rate: {drop_rate * 100:.1f}%")
        return "\n".join(lines)


class Network:
    """Routes requests to registered servers through a lossy, slow link.

    Each leg (client to server, server to client) gets its own drop roll and
    its own delay. A request that reaches a server may still lose its
    response, so an error here does not prove the server did nothing.
    """

    def __init__(self, config: Optional[NetworkConfig] = None,
                 delay_policy: Optional[DelayPolicy] = None,
                 drop_policy: Optional[DropPolicy] = None) -> None:
        self.config = config or NetworkConfig()
        if delay_policy is None or drop_policy is None:
            default = RandomPolicy(self.config.seed)
            delay_policy = delay_policy or default
            drop_policy = drop_policy or default
        self.delay_policy = delay_policy
        self.drop_policy = drop_policy

        self.stats = NetworkStats()
        self._servers: Dict[str, ServerHandler] = {}

    def register_server(self, prefix: str, handler: ServerHandler) -> None:
        if prefix in self._servers:
            logger.warning("replacing server registered at %s", prefix)
        self._servers[prefix] = handler
        logger.debug("server registered: %s", prefix)

    def route_request(self, request: RequestDescriptor) -> Optional[ServerHandler]:
        # Longest matching prefix wins so that overlapping registrations
        # resolve the same way regardless of registration order.
        best = None
        for prefix in self._servers:
            if request.url.startswith(prefix) and (best is None or len(prefix) > len(best)):
                best = prefix
        return self._servers[best] if best is not None else None

    def update_config(self, **changes) -> NetworkConfig:
        self.config = dataclasses.replace(self.config, **changes)
        logger.debug("network configuration updated: %s", self.config)
        return self.config

    def get_stats(self) -> NetworkStats:
        return self.stats.snapshot()

    def reset_stats(self) -> None:
        self.stats = NetworkStats()
        logger.debug("network statistics reset")

    def dispatch(self, request: RequestDescriptor, on_success: SuccessCallback,
                 on_error: ErrorCallback) -> None:
        loop = asyncio.get_running_loop()
        self.stats.requests_sent += 1
        logger.debug("request received from client: %s %s", request.method.value, request.url)

        if self.drop_policy.should_drop(self.config.drop_rate):
            self.stats.requests_dropped += 1
            logger.info("request dropped: %s %s", request.method.value, request.url)
            loop.call_later(self._delay(), on_error, NetworkDropped())
            return

        server = self.route_request(request)
        if server is None:
            self.stats.requests_dropped += 1
            logger.info("no server found for url %s", request.url)
            loop.call_later(self.config.no_route_delay_ms / 1000, on_error, NoRoute())
            return

        delay = self._delay()
        logger.debug("request delayed for %dms", delay * 1000)
        loop.call_later(delay, self._deliver, server, request, on_success, on_error)

    def _deliver(self, server: ServerHandler, request: RequestDescriptor,
                 on_success: SuccessCallback, on_error: ErrorCallback) -> None:
        self.stats.requests_delivered += 1
        logger.debug("request delivered to server: %s %s", request.method.value, request.url)

        answered = False

        def respond(response: ResponseDescriptor) -> None:
            nonlocal answered
            if answered:
                logger.warning("server answered %s %s more than once; ignoring",
                               request.method.value, request.url)
                return
            answered = True
            self._send_response(response, on_success, on_error)

        try:
            server.handle_request(request, respond)
        except Exception:
            logger.exception("server failed handling %s %s", request.method.value, request.url)
            if not answered:
                respond(json_response(STATUS.INTERNAL_ERROR, False, MESSAGES.INTERNAL_ERROR))

    def _send_response(self, response: ResponseDescriptor, on_success: SuccessCallback,
                       on_error: ErrorCallback) -> None:
        loop = asyncio.get_running_loop()
        self.stats.responses_sent += 1
        logger.debug("response received from server: status=%s", response.status)

        if self.drop_policy.should_drop(self.config.drop_rate):
            self.stats.responses_dropped += 1
            logger.info("response dropped: status=%s", response.status)
            loop.call_later(self._delay(), on_error, NetworkDropped())
            return

        delay = self._delay()
        logger.debug("response delayed for %dms", delay * 1000)
        loop.call_later(delay, self._deliver_response, response, on_success)

    def _deliver_response(self, response: ResponseDescriptor, on_success: SuccessCallback) -> None:
        self.stats.responses_delivered += 1
        logger.debug("response delivered to client: status=%s", response.status)
        on_success(response)

    def _delay(self) -> float:
        """Next leg delay, in seconds."""
        return self.delay_policy.next_delay(self.config.min_delay_ms, self.config.max_delay_ms) / 1000
