from typing import Any, Optional

from .config import MESSAGES, STATUS


class TransportError(Exception):
    """A request that never produced a usable response.

    ``reason`` is one of ``"dropped"``, ``"no-route"`` or ``"timeout"`` so that
    callers can pick a retry policy without parsing messages.
    """

    reason = "transport"

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class NetworkDropped(TransportError):
    reason = "dropped"

    def __init__(self, message: str = MESSAGES.NETWORK_DROPPED) -> None:
        super().__init__(STATUS.NETWORK_ERROR, message)


class NoRoute(TransportError):
    reason = "no-route"

    def __init__(self, message: str = MESSAGES.SERVER_NOT_FOUND) -> None:
        super().__init__(STATUS.NOT_FOUND, message)


class RequestTimeout(TransportError):
    reason = "timeout"

    def __init__(self, message: str = MESSAGES.NETWORK_TIMEOUT) -> None:
        super().__init__(STATUS.NETWORK_ERROR, message)


class InvalidStateError(RuntimeError):
    pass


class ApiError(Exception):
    """The exchange completed but the server reported a failure."""

    def __init__(self, status: int, message: str, data: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status = status
        self.message = message
        self.data = data
