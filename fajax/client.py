import asyncio
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from .config import API, CONTENT_TYPE_HEADER, CONTENT_TYPE_JSON, COOKIE_NAMES, MESSAGES, STATUS, USER_ID_HEADER
from .cookies import CookieJar
from .errors import ApiError
from .models import parse_json
from .network import Network
from .request import FakeRequest

logger = logging.getLogger(__name__)

JSON_HEADERS = {CONTENT_TYPE_HEADER: CONTENT_TYPE_JSON}


async def send_request(network: Network, cookie_jar: Optional[CookieJar], method: str, url: str,
                       headers: Optional[Dict[str, str]] = None, body: Optional[str] = None,
                       timeout: int = 0) -> Dict[str, Any]:
    """Run one exchange and return the parsed envelope.

    Transport failures propagate as ``TransportError``; a completed exchange
    whose envelope reports failure raises ``ApiError``.
    """
    request = FakeRequest(network, cookie_jar, timeout=timeout)
    request.open(method, url)
    for key, value in (headers or {}).items():
        request.set_request_header(key, value)
    request.send(body)

    try:
        response = await request.wait()
    except asyncio.CancelledError:
        request.abort()
        raise

    payload = parse_json(response.body)
    if not isinstance(payload, dict):
        raise ApiError(response.status, response.status_text)
    if response.status in (STATUS.OK, STATUS.CREATED) and payload.get("success"):
        return payload
    raise ApiError(response.status, payload.get("message") or response.status_text, payload.get("data"))


class PlannerClient:
    """Study-planner API calls issued through the simulated network."""

    def __init__(self, network: Network, cookie_jar: CookieJar, users=None, timeout: int = 0) -> None:
        self.network = network
        self.cookie_jar = cookie_jar
        # Only used to restore a session from cookies without a round trip.
        self.users = users
        self.timeout = timeout

        self.current_user_id: Optional[str] = None
        self.current_user: Optional[Dict] = None

    def is_logged_in(self) -> bool:
        return self.current_user_id is not None

    async def register(self, email: str, password: str, name: str) -> Dict:
        response = await self._send("POST", API.REGISTER, JSON_HEADERS,
                                    {"email": email, "password": password, "name": name})
        self._remember(response["data"]["user"])
        return response

    async def login(self, email: str, password: str) -> Dict:
        response = await self._send("POST", API.LOGIN, JSON_HEADERS,
                                    {"email": email, "password": password})
        self._remember(response["data"]["user"])
        return response

    def logout(self) -> None:
        self.current_user_id = None
        self.current_user = None
        self.cookie_jar.delete(COOKIE_NAMES.USER_ID)
        self.cookie_jar.delete(COOKIE_NAMES.USER_EMAIL)
        logger.debug("logged out, session cookies cleared")

    def restore_session(self) -> Optional[Dict]:
        user_id = self.cookie_jar.get(COOKIE_NAMES.USER_ID)
        email = self.cookie_jar.get(COOKIE_NAMES.USER_EMAIL)
        if not user_id or not email or self.users is None:
            return None
        user = self.users.get_by_id(user_id)
        if user is None:
            return None
        self._remember({"id": user["id"], "email": user["email"], "name": user["name"]})
        logger.debug("session restored for %s", user["email"])
        return self.current_user

    async def profile(self) -> Dict:
        return await self._send("GET", API.PROFILE)

    async def get_tasks(self, **filters) -> Dict:
        url = API.TASKS
        if filters:
            url += "?" + urlencode(filters)
        return await self._authorized("GET", url)

    async def get_task(self, task_id: str) -> Dict:
        return await self._authorized("GET", API.task_by_id(task_id))

    async def create_task(self, task: Dict) -> Dict:
        return await self._authorized("POST", API.TASKS, task)

    async def update_task(self, task_id: str, updates: Dict) -> Dict:
        return await self._authorized("PUT", API.task_by_id(task_id), updates)

    async def delete_task(self, task_id: str) -> Dict:
        return await self._authorized("DELETE", API.task_by_id(task_id))

    async def _authorized(self, method: str, url: str, payload: Optional[Dict] = None) -> Dict:
        if not self.is_logged_in():
            raise ApiError(STATUS.UNAUTHORIZED, MESSAGES.UNAUTHORIZED_ACCESS)
        headers = {USER_ID_HEADER: self.current_user_id}
        if payload is not None:
            headers.update(JSON_HEADERS)
        return await self._send(method, url, headers, payload)

    async def _send(self, method: str, url: str, headers: Optional[Dict] = None,
                    payload: Optional[Dict] = None) -> Dict:
        body = json.dumps(payload) if payload is not None else None
        return await send_request(self.network, self.cookie_jar, method, url, headers, body, self.timeout)

    def _remember(self, user: Dict) -> None:
        self.current_user_id = user["id"]
        self.current_user = user
