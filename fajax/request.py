import asyncio
import logging
from enum import IntEnum
from typing import Callable, Dict, Optional

from .config import SET_COOKIE_TTL_DAYS
from .cookies import CookieJar
from .errors import InvalidStateError, RequestTimeout, TransportError
from .models import Method, RequestDescriptor, ResponseDescriptor, envelope
from .network import Network

logger = logging.getLogger(__name__)

Callback = Callable[["FakeRequest"], None]


class ReadyState(IntEnum):
    UNSENT = 0
    OPENED = 1
    # Loading (3) is never reported: bodies arrive in one piece.
    HEADERS_IN_FLIGHT = 2
    DONE = 4


class FakeRequest:
    """XMLHttpRequest look-alike that travels through a simulated ``Network``.

    One instance per logical call. The first resolution (response, transport
    error or timeout) moves the request to DONE and wins; anything arriving
    afterwards is ignored. ``abort()`` resets to UNSENT without firing any
    callback.
    """

    def __init__(self, network: Network, cookie_jar: Optional[CookieJar] = None,
                 timeout: int = 0) -> None:
        self.network = network
        self.cookie_jar = cookie_jar
        # milliseconds, 0 disables the timer
        self.timeout = timeout

        self.ready_state = ReadyState.UNSENT
        self.status = 0
        self.status_text = ""
        self.response_text = ""
        self.response: Optional[ResponseDescriptor] = None
        self.error: Optional[TransportError] = None

        self.onload: Optional[Callback] = None
        self.onerror: Optional[Callback] = None
        self.ontimeout: Optional[Callback] = None
        self.onreadystatechange: Optional[Callback] = None

        self._method: Optional[Method] = None
        self._url = ""
        self._headers: Dict[str, str] = {}
        self._timer: Optional[asyncio.TimerHandle] = None
        self._future: Optional[asyncio.Future] = None
        # Identifies the in-flight send; completions for older sends are stale.
        self._attempt: Optional[object] = None

    @property
    def method(self) -> Optional[Method]:
        return self._method

    @property
    def url(self) -> str:
        return self._url

    def open(self, method: str, url: str) -> None:
        if self.ready_state != ReadyState.UNSENT:
            raise InvalidStateError(f"open() called in state {self.ready_state.name}")
        try:
            self._method = Method(method.upper())
        except ValueError:
            raise ValueError(f"unsupported method {method!r}") from None
        self._url = url
        self._headers = {}
        self._set_state(ReadyState.OPENED)
        logger.debug("request opened: %s %s", self._method.value, url)

    def set_request_header(self, key: str, value: str) -> None:
        if self.ready_state != ReadyState.OPENED:
            raise InvalidStateError(f"set_request_header() called in state {self.ready_state.name}")
        self._headers[key] = value
        logger.debug("header set: %s = %s", key, value)

    def send(self, body: Optional[str] = None) -> None:
        if self.ready_state != ReadyState.OPENED:
            raise InvalidStateError(f"send() called in state {self.ready_state.name}")
        loop = asyncio.get_running_loop()

        self._attach_cookies()
        request = RequestDescriptor(
            method=self._method,
            url=self._url,
            headers=dict(self._headers),
            body=body,
        )
        attempt = self._attempt = object()
        self._future = loop.create_future()
        self._set_state(ReadyState.HEADERS_IN_FLIGHT)
        logger.debug("sending request through network: %s %s", request.method.value, request.url)

        if self.timeout > 0:
            self._timer = loop.call_later(self.timeout / 1000, self._handle_timeout, attempt)

        self.network.dispatch(
            request,
            lambda response: self._handle_response(attempt, response),
            lambda error: self._handle_error(attempt, error),
        )

    def abort(self) -> None:
        if self.ready_state == ReadyState.DONE:
            return
        self._cancel_timer()
        self._attempt = None
        if self._future is not None and not self._future.done():
            self._future.cancel()
        # Plain assignment: abort fires no callbacks, readystatechange included.
        self.ready_state = ReadyState.UNSENT
        logger.debug("request aborted: %s", self._url)

    async def wait(self) -> ResponseDescriptor:
        """Wait for the outcome of ``send()``.

        Returns the response (whatever its status) or raises the
        ``TransportError`` that ended the request.
        """
        if self._future is None:
            raise InvalidStateError("wait() called before send()")
        return await self._future

    def get_response_header(self, name: str) -> Optional[str]:
        if self.response is None:
            return None
        for key, value in self.response.headers.items():
            if key.lower() == name.lower():
                return value if isinstance(value, str) else ", ".join(value)
        return None

    def get_all_response_headers(self) -> str:
        if self.response is None:
            return ""
        lines = []
        for key, value in self.response.headers.items():
            for item in ([value] if isinstance(value, str) else value):
                lines.append(f"{key}: {item}")
        return "".join(line + "\r\n" for line in lines)

    def _handle_response(self, attempt: object, response: ResponseDescriptor) -> None:
        if not self._is_current(attempt):
            logger.debug("late response ignored: %s", self._url)
            return
        self._cancel_timer()
        self._process_cookies(response)

        self.response = response
        self.status = response.status
        self.status_text = response.status_text
        self.response_text = response.body or ""
        self.ready_state = ReadyState.DONE
        self._future.set_result(response)
        logger.debug("response received: status=%s url=%s", self.status, self._url)

        self._fire(self.onreadystatechange)
        self._fire(self.onload)

    def _handle_error(self, attempt: object, error: TransportError) -> None:
        if not self._is_current(attempt):
            logger.debug("late error ignored: %s", self._url)
            return
        self._cancel_timer()
        self._fail(error)
        logger.debug("request error (%s): %s", error.reason, self._url)
        self._fire(self.onerror)

    def _handle_timeout(self, attempt: object) -> None:
        if not self._is_current(attempt):
            return
        self._timer = None
        self._fail(RequestTimeout())
        logger.debug("request timeout after %sms: %s", self.timeout, self._url)
        self._fire(self.ontimeout if self.ontimeout is not None else self.onerror)

    def _fail(self, error: TransportError) -> None:
        self.error = error
        self.status = error.status
        self.status_text = error.message
        self.response_text = envelope(False, error.message)
        self.ready_state = ReadyState.DONE
        self._future.set_exception(error)
        # Callback-only callers never await the future.
        self._future.exception()
        self._fire(self.onreadystatechange)

    def _is_current(self, attempt: object) -> bool:
        return attempt is self._attempt and self.ready_state == ReadyState.HEADERS_IN_FLIGHT

    def _attach_cookies(self) -> None:
        if self.cookie_jar is None:
            return
        cookies = self.cookie_jar.header_value()
        if cookies:
            self._headers["Cookie"] = cookies
            logger.debug("cookies attached to request: %d", len(cookies.split("; ")))

    def _process_cookies(self, response: ResponseDescriptor) -> None:
        if self.cookie_jar is None:
            return
        for raw in response.set_cookies():
            name, _, value = raw.split(";", 1)[0].partition("=")
            name, value = name.strip(), value.strip()
            if name and value:
                self.cookie_jar.set(name, value, SET_COOKIE_TTL_DAYS)
                logger.debug("cookie set from server: %s", name)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _set_state(self, state: ReadyState) -> None:
        self.ready_state = state
        self._fire(self.onreadystatechange)

    def _fire(self, callback: Optional[Callback]) -> None:
        if callback is not None:
            callback(self)
