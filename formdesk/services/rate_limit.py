"""Per-client fixed-window rate limiting.

Counters live in a ``RateLimitStore``. The in-memory store is enough for a
single instance; a shared store (e.g. Redis INCR + EXPIRE) can be dropped in
for multi-instance deployments as long as it implements the same protocol.
"""

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Protocol

from starlette.requests import Request

from formdesk.config import get_settings

logger = logging.getLogger(__name__)

# Stale windows are swept every N checks
PRUNE_INTERVAL = 256


@dataclass
class RateLimitRecord:
    window_start: float
    count: int = 1


class RateLimitStore(Protocol):
    def hit(self, key: str, window: float, now: float) -> RateLimitRecord:
        """Count one request for *key* and return the updated record."""
        ...

    def prune(self, window: float, now: float) -> int:
        """Drop records whose window has expired. Returns how many were dropped."""
        ...

    def clear(self) -> None: ...


class InMemoryRateLimitStore:
    """Process-local store; read-and-increment happens under one lock."""

    def __init__(self) -> None:
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = Lock()

    def hit(self, key: str, window: float, now: float) -> RateLimitRecord:
        with self._lock:
            record = self._records.get(key)
            if record is None or now - record.window_start > window:
                record = RateLimitRecord(window_start=now)
                self._records[key] = record
            else:
                record.count += 1
            return RateLimitRecord(window_start=record.window_start, count=record.count)

    def prune(self, window: float, now: float) -> int:
        with self._lock:
            expired = [
                key
                for key, record in self._records.items()
                if now - record.window_start > window
            ]
            for key in expired:
                del self._records[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class FixedWindowRateLimiter:
    """Allow ``limit`` requests per ``window`` seconds for each key.

    Usage::

        limiter = FixedWindowRateLimiter(limit=5, window=60)
        if not limiter.check(client_ip):
            raise RateLimited()
    """

    def __init__(
        self, limit: int, window: float = 60.0, store: RateLimitStore | None = None
    ) -> None:
        self.limit = limit
        self.window = window
        self.store: RateLimitStore = (
            store if store is not None else InMemoryRateLimitStore()
        )
        self._checks = 0

    def check(self, key: str) -> bool:
        """Record a request for *key*; return False once it is over the limit."""
        now = time.monotonic()
        record = self.store.hit(key, self.window, now)

        self._checks += 1
        if self._checks % PRUNE_INTERVAL == 0:
            dropped = self.store.prune(self.window, now)
            if dropped:
                logger.debug("Pruned %d expired rate-limit windows", dropped)

        return record.count <= self.limit

    def reset(self) -> None:
        self.store.clear()
        self._checks = 0


_ticket_limiter: FixedWindowRateLimiter | None = None
_geocode_limiter: FixedWindowRateLimiter | None = None


def get_ticket_limiter() -> FixedWindowRateLimiter:
    """Limiter for ticket creation (FastAPI dependency)."""
    global _ticket_limiter
    if _ticket_limiter is None:
        settings = get_settings()
        _ticket_limiter = FixedWindowRateLimiter(
            limit=settings.ticket_rate_limit, window=settings.rate_limit_window
        )
    return _ticket_limiter


def get_geocode_limiter() -> FixedWindowRateLimiter:
    """Limiter for geocoding lookups (FastAPI dependency)."""
    global _geocode_limiter
    if _geocode_limiter is None:
        settings = get_settings()
        _geocode_limiter = FixedWindowRateLimiter(
            limit=settings.geocode_rate_limit, window=settings.rate_limit_window
        )
    return _geocode_limiter


def client_ip(request: Request) -> str:
    """Client address: first X-Forwarded-For hop, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
