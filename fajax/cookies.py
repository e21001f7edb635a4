import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

DAY = 24 * 60 * 60


@dataclass(frozen=True)
class CookieEntry:
    name: str
    value: str
    # None marks a session cookie.
    expires_at: Optional[float] = None
    path: str = "/"
    domain: Optional[str] = None
    secure: bool = False
    same_site: str = "Lax"

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class CookieJar:
    """Name -> cookie store shared by every request issued from one client.

    Names and values are kept verbatim. Expired entries stay invisible to
    readers and are pruned lazily.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: Dict[str, CookieEntry] = {}

    def set(self, name: str, value: str, ttl_days: Optional[float] = 7, *,
            path: str = "/", domain: Optional[str] = None, secure: bool = False,
            same_site: str = "Lax") -> CookieEntry:
        now = self._clock()
        if ttl_days is None:
            expires_at = None
        elif ttl_days <= 0:
            expires_at = now - 1
        else:
            expires_at = now + ttl_days * DAY

        entry = CookieEntry(name=name, value=value, expires_at=expires_at, path=path,
                            domain=domain, secure=secure, same_site=same_site)
        self._entries[name] = entry
        logger.debug("cookie set: %s (ttl_days=%s)", name, ttl_days)
        return entry

    def get(self, name: str) -> Optional[str]:
        entry = self._live(name)
        return entry.value if entry is not None else None

    def delete(self, name: str, *, path: str = "/", domain: Optional[str] = None) -> None:
        self.set(name, "", -1, path=path, domain=domain)
        logger.debug("cookie deleted: %s", name)

    def exists(self, name: str) -> bool:
        return self.get(name) is not None

    def get_all(self) -> Dict[str, str]:
        now = self._clock()
        self._prune(now)
        return {name: entry.value for name, entry in self._entries.items()}

    def clear_all(self) -> None:
        for name in list(self.get_all()):
            self.delete(name)
        logger.debug("all cookies cleared")

    def header_value(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.get_all().items())

    def _live(self, name: str) -> Optional[CookieEntry]:
        entry = self._entries.get(name)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[name]
            return None
        return entry

    def _prune(self, now: float) -> None:
        for name in [n for n, e in self._entries.items() if e.expired(now)]:
            del self._entries[name]

    def __len__(self) -> int:
        return len(self.get_all())
