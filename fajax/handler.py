import logging
from typing import Callable, Dict, Optional, Protocol

from .config import MESSAGES, STATUS, USER_ID_HEADER, COOKIE_NAMES
from .models import RequestDescriptor, ResponseDescriptor, json_response, parse_json

logger = logging.getLogger(__name__)

ResponseCallback = Callable[[ResponseDescriptor], None]


class ServerHandler(Protocol):
    """What the network needs from a server registered against a prefix.

    ``callback`` must be called exactly once, now or later.
    """

    def handle_request(self, request: RequestDescriptor, callback: ResponseCallback) -> None: ...


class JsonHandler:
    """Synchronous handler answering with ``{success, message, data}`` bodies."""

    name = "server"

    def handle_request(self, request: RequestDescriptor, callback: ResponseCallback) -> None:
        logger.debug("%s: processing %s %s", self.name, request.method.value, request.url)
        try:
            response = self.handle(request)
        except Exception:
            logger.exception("%s: error processing %s %s", self.name, request.method.value, request.url)
            response = self.respond(STATUS.INTERNAL_ERROR, False, MESSAGES.INTERNAL_ERROR)
        callback(response)

    def handle(self, request: RequestDescriptor) -> ResponseDescriptor:
        raise NotImplementedError

    def respond(self, status: int, success: bool, message: str, data=None,
                headers: Optional[Dict] = None) -> ResponseDescriptor:
        logger.debug("%s: sending response status=%s success=%s message=%r",
                     self.name, status, success, message)
        return json_response(status, success, message, data, headers)

    def not_found(self) -> ResponseDescriptor:
        return self.respond(STATUS.NOT_FOUND, False, MESSAGES.ENDPOINT_NOT_FOUND)

    @staticmethod
    def json_body(request: RequestDescriptor) -> Optional[dict]:
        data = parse_json(request.body)
        return data if isinstance(data, dict) else None

    @staticmethod
    def session_user_id(request: RequestDescriptor) -> Optional[str]:
        """User id from the ``UserId`` header, falling back to the session cookie."""
        user_id = request.headers.get(USER_ID_HEADER)
        if not user_id:
            user_id = request.cookies().get(COOKIE_NAMES.USER_ID)
        return user_id or None
