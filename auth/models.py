"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The limiter and the
auth service do the work; these only carry shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RateLimitEntry:
    """Failed-login counter for one client identity.

    window_start is the wall-clock time (seconds, float) of the first failure
    in the current window. It is never moved by later failures -- the window
    resets only once it has fully elapsed.
    """

    failure_count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitDecision:
    limited: bool
    retry_after_seconds: int = 0


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a login attempt as seen by the route layer.

    reason is one of "ok", "rate_limited", "bad_credentials".
    token is set only when accepted; retry_after_seconds only when rate limited.
    """

    accepted: bool
    reason: str
    token: str | None = None
    retry_after_seconds: int | None = None
