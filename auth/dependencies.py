"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

client_identity() derives the rate-limit key from proxy headers:
  1. first hop of X-Forwarded-For
  2. X-Real-IP
  3. the literal "unknown"

Clients that arrive with neither header all share the "unknown" bucket. That
is deliberate: anonymous clients get one shared failure budget, not an
unlimited one.

get_session_gate() builds a SessionGate over the request cookies and the
response FastAPI will send. require_auth() raises HTTP 401 if the session
cookie is missing or does not verify.

Layer rule: auth/dependencies.py may import from fastapi because this module
is part of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, Response

from auth.limiter import LoginRateLimiter
from auth.session import SessionGate, StarletteCookieStore
from core.config import get_settings

UNKNOWN_CLIENT = "unknown"


def client_identity(request: Request) -> str:
    """Return the client identity used to key login rate limits."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    real_ip = request.headers.get("x-real-ip", "").strip()
    return real_ip or UNKNOWN_CLIENT


def get_login_limiter(request: Request) -> LoginRateLimiter:
    return request.app.state.login_limiter


def get_session_gate(request: Request, response: Response) -> SessionGate:
    return SessionGate(StarletteCookieStore(request, response), settings=get_settings())


def require_auth(request: Request, response: Response) -> None:
    """Require an authenticated admin session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected", dependencies=[Depends(require_auth)])
    """
    if not get_session_gate(request, response).is_authenticated():
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
