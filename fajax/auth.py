import re
from typing import Dict, List, Optional
from urllib.parse import quote

from .config import API, COOKIE_NAMES, MESSAGES, SESSION_MAX_AGE, STATUS
from .handler import JsonHandler
from .models import Method, RequestDescriptor, ResponseDescriptor
from .store import UserStore

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def public_user(user: Dict) -> Dict:
    return {k: user[k] for k in ("id", "email", "name", "createdAt")}


class AuthServer(JsonHandler):
    """Registration, login and profile lookup under ``/api/auth``."""

    name = "auth"

    def __init__(self, users: UserStore) -> None:
        self.users = users

    def handle(self, request: RequestDescriptor) -> ResponseDescriptor:
        path, method = request.path, request.method
        if path == API.REGISTER and method == Method.POST:
            return self.register(request)
        if path == API.LOGIN and method == Method.POST:
            return self.login(request)
        if path == API.PROFILE and method == Method.GET:
            return self.profile(request)
        return self.not_found()

    def register(self, request: RequestDescriptor) -> ResponseDescriptor:
        data = self.json_body(request)
        if data is None:
            return self.respond(STATUS.BAD_REQUEST, False, MESSAGES.INVALID_DATA)
        if not data.get("email") or not data.get("password") or not data.get("name"):
            return self.respond(STATUS.BAD_REQUEST, False, MESSAGES.MISSING_FIELDS)
        if not EMAIL_RE.match(data["email"]):
            return self.respond(STATUS.BAD_REQUEST, False, MESSAGES.INVALID_EMAIL)
        if self.users.exists(data["email"]):
            return self.respond(STATUS.CONFLICT, False, MESSAGES.USER_EXISTS)

        user = self.users.add(data["email"], data["password"], data["name"])
        return self.respond(STATUS.CREATED, True, MESSAGES.REGISTER_SUCCESS,
                            {"user": public_user(user)},
                            {"Set-Cookie": self.session_cookies(user["id"], user["email"])})

    def login(self, request: RequestDescriptor) -> ResponseDescriptor:
        data = self.json_body(request)
        if data is None:
            return self.respond(STATUS.BAD_REQUEST, False, MESSAGES.INVALID_DATA)
        if not data.get("email") or not data.get("password"):
            return self.respond(STATUS.BAD_REQUEST, False, MESSAGES.MISSING_FIELDS)

        user = self.users.validate_credentials(data["email"], data["password"])
        if user is None:
            return self.respond(STATUS.UNAUTHORIZED, False, MESSAGES.INVALID_CREDENTIALS)
        return self.respond(STATUS.OK, True, MESSAGES.LOGIN_SUCCESS,
                            {"user": public_user(user)},
                            {"Set-Cookie": self.session_cookies(user["id"], user["email"])})

    def profile(self, request: RequestDescriptor) -> ResponseDescriptor:
        user_id = self.session_user_id(request)
        if user_id is None:
            return self.respond(STATUS.UNAUTHORIZED, False, MESSAGES.UNAUTHORIZED_ACCESS)
        user = self.users.get_by_id(user_id)
        if user is None:
            return self.respond(STATUS.NOT_FOUND, False, MESSAGES.USER_NOT_FOUND)
        return self.respond(STATUS.OK, True, MESSAGES.PROFILE_RETRIEVED,
                            {"user": {k: user[k] for k in ("id", "email", "name")}})

    def validate_user(self, user_id: Optional[str]) -> Optional[Dict]:
        if not user_id:
            return None
        return self.users.get_by_id(user_id)

    @staticmethod
    def session_cookies(user_id: str, email: str) -> List[str]:
        attrs = f"Path=/; Max-Age={SESSION_MAX_AGE}; SameSite=Lax"
        return [
            f"{COOKIE_NAMES.USER_ID}={user_id}; {attrs}",
            f"{COOKIE_NAMES.USER_EMAIL}={quote(email, safe='')}; {attrs}",
        ]
