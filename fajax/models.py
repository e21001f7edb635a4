import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qsl

from .config import STATUS_TEXT

HeaderValue = Union[str, List[str]]


class Method(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


def status_text(status: int) -> str:
    return STATUS_TEXT.get(status, "Unknown")


@dataclass(frozen=True)
class RequestDescriptor:
    method: Method
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    issued_at: float = field(default_factory=time.time)

    @property
    def path(self) -> str:
        return self.url.split("?", 1)[0]

    @property
    def query(self) -> Dict[str, str]:
        if "?" not in self.url:
            return {}
        return dict(parse_qsl(self.url.split("?", 1)[1], keep_blank_values=True))

    def cookies(self) -> Dict[str, str]:
        jar = {}
        for part in self.headers.get("Cookie", "").split(";"):
            name, _, value = part.strip().partition("=")
            if name and value:
                jar[name] = value
        return jar


@dataclass(frozen=True)
class ResponseDescriptor:
    status: int
    status_text: str
    headers: Dict[str, HeaderValue] = field(default_factory=dict)
    body: str = ""

    def set_cookies(self) -> List[str]:
        value = self.headers.get("Set-Cookie")
        if not value:
            return []
        if isinstance(value, str):
            return [value]
        return list(value)


def envelope(success: bool, message: str, data: Optional[Any] = None) -> str:
    return json.dumps({"success": success, "message": message, "data": data})


def json_response(status: int, success: bool, message: str, data: Optional[Any] = None,
                  headers: Optional[Dict[str, HeaderValue]] = None) -> ResponseDescriptor:
    return ResponseDescriptor(
        status=status,
        status_text=status_text(status),
        headers=dict(headers or {}),
        body=envelope(success, message, data),
    )


def parse_json(text: Optional[str]) -> Optional[Any]:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None
