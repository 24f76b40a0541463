"""
auth/service.py -- login / logout / is_authenticated, as consumed by routes.

Order of operations in login() is fixed:
  1. limiter.try_attempt() -- threshold check AND failure count, atomically;
                              a limited client never reaches step 2
  2. gate.authenticate()   -- the only step that may block on a collaborator
  3. failure: nothing more, step 1 already counted it
     success: limiter.clear(), issue a token, gate.attach()

Counting before the credential check is what keeps parallel guesses from the
same client from all slipping past the threshold.

Exceptions from the credential or cookie collaborators are not swallowed.
The counted attempt is released (it was neither a success nor a failure) and
the exception propagates to the route layer, which turns it into a 500.
"""

from __future__ import annotations

import logging

from auth.limiter import LoginRateLimiter
from auth.models import LoginResult
from auth.session import SessionGate
from auth.tokens import issue_session_token

logger = logging.getLogger("sitecms.auth")


def login(
    gate: SessionGate,
    limiter: LoginRateLimiter,
    client_id: str,
    username: str,
    password: str,
) -> LoginResult:
    """Run one login attempt for client_id.

    A rate-limited client is rejected even when the credentials are correct,
    and the rejection is not counted as another failure.
    """
    decision = limiter.try_attempt(client_id)
    if decision.limited:
        logger.warning("Login rejected (rate limited) for client %s", client_id)
        return LoginResult(
            accepted=False,
            reason="rate_limited",
            retry_after_seconds=decision.retry_after_seconds,
        )

    try:
        authenticated = gate.authenticate(username, password)
    except Exception:
        limiter.release(client_id)
        raise

    if not authenticated:
        logger.warning("Failed login for client %s", client_id)
        return LoginResult(accepted=False, reason="bad_credentials")

    limiter.clear(client_id)
    token = issue_session_token(gate.settings.auth_secret)
    gate.attach(token)
    logger.info("Admin logged in from client %s", client_id)
    return LoginResult(accepted=True, reason="ok", token=token)


def logout(gate: SessionGate) -> None:
    gate.detach()


def is_authenticated(gate: SessionGate) -> bool:
    return gate.is_authenticated()
