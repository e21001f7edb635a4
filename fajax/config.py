from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NetworkConfig:
    min_delay_ms: int = 1000
    max_delay_ms: int = 3000
    drop_rate: float = 0.2
    no_route_delay_ms: int = 100
    seed: Optional[int] = None
    debug: bool = False

    def __post_init__(self) -> None:
        if self.min_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("delays must be non-negative")
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError("min_delay_ms must not exceed max_delay_ms")
        if not 0.0 <= self.drop_rate <= 1.0:
            raise ValueError("drop_rate must be within [0, 1]")
        if self.no_route_delay_ms < 0:
            raise ValueError("no_route_delay_ms must be non-negative")


class STATUS:
    OK = 200
    CREATED = 201
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_ERROR = 500
    NETWORK_ERROR = 0


STATUS_TEXT = {
    200: "OK",
    201: "Created",
    400: "Bad Request",
    401: "Unauthorized",
    404: "Not Found",
    409: "Conflict",
    500: "Internal Server Error",
}


class MESSAGES:
    LOGIN_SUCCESS = "Login successful"
    REGISTER_SUCCESS = "Registration successful"
    PROFILE_RETRIEVED = "Profile retrieved"
    TASKS_RETRIEVED = "Tasks retrieved successfully"
    TASK_RETRIEVED = "Task retrieved successfully"
    TASK_CREATED = "Task created successfully"
    TASK_UPDATED = "Task updated successfully"
    TASK_DELETED = "Task deleted successfully"

    INVALID_CREDENTIALS = "Invalid email or password"
    INVALID_EMAIL = "Invalid email format"
    INVALID_DATA = "Invalid request data"
    USER_EXISTS = "User already exists"
    USER_NOT_FOUND = "User not found"
    TASK_NOT_FOUND = "Task not found"
    UNAUTHORIZED_ACCESS = "Unauthorized access"
    MISSING_FIELDS = "Missing required fields"
    ENDPOINT_NOT_FOUND = "Endpoint not found"
    INTERNAL_ERROR = "Internal server error"

    NETWORK_DROPPED = "connection lost"
    SERVER_NOT_FOUND = "server not found"
    NETWORK_TIMEOUT = "request timed out"


class API:
    AUTH_BASE = "/api/auth"
    TASKS_BASE = "/api/tasks"

    REGISTER = "/api/auth/register"
    LOGIN = "/api/auth/login"
    PROFILE = "/api/auth/profile"

    TASKS = "/api/tasks"

    @staticmethod
    def task_by_id(task_id: str) -> str:
        return f"/api/tasks/{task_id}"


class COOKIE_NAMES:
    USER_ID = "study_planner_user_id"
    USER_EMAIL = "study_planner_email"


USER_ID_HEADER = "UserId"
CONTENT_TYPE_HEADER = "Content-Type"
CONTENT_TYPE_JSON = "application/json"

# Session cookies issued by the auth server live for a week.
SESSION_MAX_AGE = 7 * 24 * 60 * 60
# Cookies learned from Set-Cookie are always stored with this TTL.
SET_COOKIE_TTL_DAYS = 7
