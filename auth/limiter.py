"""
auth/limiter.py -- In-memory failed-login limiter, keyed by client identity.

Counts FAILED logins, not requests. After `max_failures` failures inside one
window, every login from that identity is rejected until the window that
started with the first failure has elapsed -- even with correct credentials.
A successful login clears the counter.

Sliding-window-start, not sliding-log: one (count, window_start) pair per
misbehaving client. A burst just before expiry is forgotten at expiry rather
than decaying smoothly; in exchange memory is O(clients currently failing)
and every operation is O(1).

Thread safety: FastAPI runs route handlers that do blocking work in a thread
pool, so requests from the same client can interleave. Every read-modify-write
on the mapping happens under a single lock. No I/O happens while the lock is
held.

The credential check sits between "may this client try?" and "count the
failure", and it cannot run under the lock. try_attempt() closes that gap:
it checks the threshold and counts the attempt as a failure in one locked
step, BEFORE the credential check. A good password then clear()s the entry,
a collaborator error release()s the slot. With N parallel requests at
threshold-1, exactly one reaches the credential check.

State is process-local and never persisted. A restart clears all counters.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable

from auth.models import RateLimitDecision, RateLimitEntry

logger = logging.getLogger("sitecms.auth")

WINDOW_SECONDS = 15 * 60
MAX_FAILURES = 10


class LoginRateLimiter:
    """Failed-login counters with a fixed window per client identity.

    Usage (login path):
        decision = limiter.try_attempt(client_id)   # check + count, atomically
        if decision.limited: reject
        if password_ok: limiter.clear(client_id)
        # bad password: nothing to do, the attempt is already counted

    check() / record_failure() are the non-reserving primitives; check() alone
    is used to answer 429 before the request body is even read.
    """

    def __init__(
        self,
        window_seconds: int = WINDOW_SECONDS,
        max_failures: int = MAX_FAILURES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.window_seconds = window_seconds
        self.max_failures = max_failures
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def _expired(self, entry: RateLimitEntry, now: float) -> bool:
        return now - entry.window_start > self.window_seconds

    def _decide(self, client_id: str, now: float) -> RateLimitDecision:
        # Caller holds the lock.
        entry = self._entries.get(client_id)
        if entry is None:
            return RateLimitDecision(limited=False)
        if self._expired(entry, now):
            del self._entries[client_id]
            return RateLimitDecision(limited=False)
        if entry.failure_count < self.max_failures:
            return RateLimitDecision(limited=False)
        # Work in milliseconds so ceil() matches whole-second Retry-After.
        remaining_ms = round((self.window_seconds - (now - entry.window_start)) * 1000)
        return RateLimitDecision(limited=True, retry_after_seconds=math.ceil(remaining_ms / 1000))

    def _count(self, client_id: str, now: float) -> int:
        # Caller holds the lock.
        entry = self._entries.get(client_id)
        if entry is None or self._expired(entry, now):
            self._entries[client_id] = RateLimitEntry(failure_count=1, window_start=now)
            return 1
        entry.failure_count += 1
        return entry.failure_count

    def check(self, client_id: str) -> RateLimitDecision:
        """Decide whether a login attempt from client_id may proceed.

        An expired entry is deleted here, so the next failure starts fresh.
        """
        now = self._clock()
        with self._lock:
            return self._decide(client_id, now)

    def try_attempt(self, client_id: str) -> RateLimitDecision:
        """check() and, when not limited, count the attempt as a failure -- under one lock.

        A limited attempt is not counted.
        """
        now = self._clock()
        with self._lock:
            decision = self._decide(client_id, now)
            if decision.limited:
                return decision
            count = self._count(client_id, now)
        if count == self.max_failures:
            logger.warning("Login failure threshold reached for client %s", client_id)
        return decision

    def release(self, client_id: str) -> None:
        """Undo one try_attempt() whose outcome was neither success nor failure."""
        with self._lock:
            entry = self._entries.get(client_id)
            if entry is None:
                return
            entry.failure_count -= 1
            if entry.failure_count <= 0:
                del self._entries[client_id]

    def record_failure(self, client_id: str) -> None:
        """Count one failed login. Does not enforce the threshold."""
        now = self._clock()
        with self._lock:
            count = self._count(client_id, now)
        if count == self.max_failures:
            logger.warning("Login failure threshold reached for client %s", client_id)

    def clear(self, client_id: str) -> None:
        """Forget all failures for client_id (called after a successful login)."""
        with self._lock:
            self._entries.pop(client_id, None)

    def purge_expired(self) -> int:
        """Delete all expired entries. Returns number of entries removed."""
        now = self._clock()
        with self._lock:
            stale = [cid for cid, entry in self._entries.items() if self._expired(entry, now)]
            for cid in stale:
                del self._entries[cid]
        return len(stale)

    def get_entry(self, client_id: str) -> RateLimitEntry | None:
        """Return a copy of the current entry, or None. Read-only view for callers."""
        with self._lock:
            entry = self._entries.get(client_id)
            if entry is None:
                return None
            return RateLimitEntry(failure_count=entry.failure_count, window_start=entry.window_start)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
