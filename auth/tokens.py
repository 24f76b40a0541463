"""
auth/tokens.py -- Session token codec, credential check, and password hashing.

Security design decisions:
  Session tokens: "<timestamp>.<nonce>.<signature>", all lowercase hex.
       timestamp is milliseconds since epoch (entropy only, not an expiry),
       nonce is secrets.token_hex(32), signature is HMAC-SHA256(AUTH_SECRET,
       "<timestamp>.<nonce>"). The token is self-verifying, so the server keeps
       no session table. The only revocation path is rotating AUTH_SECRET,
       which invalidates every outstanding token at once.

  Verification never raises. Anything malformed resolves to False and the
       route layer treats it as "not logged in". The signature must be exactly
       64 lowercase hex characters before hmac.compare_digest runs, so a
       case-flipped signature is rejected rather than decoded to equal bytes.

  Credentials: one admin identity from settings. Both username and password
       are compared with hmac.compare_digest so response time does not reveal
       a matching prefix. When ADMIN_PASSWORD_HASH is set, the password is
       checked with bcrypt instead and bcrypt always runs, even for a wrong
       username.

  Secrets are read at call time from core.config.get_settings(), not cached
  at module load, so tests and callers can pass an explicit secret.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
import time

import bcrypt

from core.config import Settings, get_settings

logger = logging.getLogger("sitecms.auth")

_NONCE_BYTES = 32
_HEX_RE = re.compile(r"[0-9a-f]+")
_SIGNATURE_RE = re.compile(r"[0-9a-f]{64}")


# ---------------------------------------------------------------------------
# Session token encode / verify
# ---------------------------------------------------------------------------


def _sign(payload: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_session_token(secret: str | None = None) -> str:
    """Create a new signed session token.

    Args:
        secret: HMAC key. Defaults to Settings.auth_secret.
    """
    key = secret if secret is not None else get_settings().auth_secret
    timestamp = format(time.time_ns() // 1_000_000, "x")
    nonce = secrets.token_hex(_NONCE_BYTES)
    payload = f"{timestamp}.{nonce}"
    return f"{payload}.{_sign(payload, key)}"


def verify_session_token(token: str | None, secret: str | None = None) -> bool:
    """Return True iff token was signed by the current secret.

    Returning False (rather than raising) keeps the caller simple: any invalid
    token is treated as unauthenticated.
    """
    if not isinstance(token, str):
        return False
    parts = token.split(".")
    if len(parts) != 3:
        return False
    timestamp, nonce, provided = parts
    if not _HEX_RE.fullmatch(timestamp) or not _HEX_RE.fullmatch(nonce):
        return False
    if not _SIGNATURE_RE.fullmatch(provided):
        return False
    key = secret if secret is not None else get_settings().auth_secret
    expected = _sign(f"{timestamp}.{nonce}", key)
    return hmac.compare_digest(provided, expected)


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


# bcrypt only reads the first 72 bytes of a password, and bcrypt>=5 raises
# ValueError instead of truncating. Longer input is refused up front.
BCRYPT_MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises ValueError for passwords over 72 bytes (UTF-8). Callers that take
    user input should check password_too_long() first.
    """
    if password_too_long(plain):
        raise ValueError(f"password cannot be longer than {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    An over-long candidate can never match a hash we produced, so it is a
    plain mismatch, not a configuration problem.
    """
    if password_too_long(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in ADMIN_PASSWORD_HASH
        logger.error("ADMIN_PASSWORD_HASH is not a valid bcrypt hash.")
        return False


# ---------------------------------------------------------------------------
# Admin credential check (constant-time)
# ---------------------------------------------------------------------------


def _equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def check_credentials(username: str, password: str, settings: Settings | None = None) -> bool:
    """Compare candidate credentials against the configured admin identity.

    Missing configuration is a failure: nobody can log in until both
    ADMIN_USERNAME and a password (plain or hash) are set.
    """
    settings = settings or get_settings()
    if not settings.admin_configured:
        logger.error("Admin credentials not configured")
        return False

    # Evaluate both halves before combining so a wrong username costs the
    # same as a wrong password.
    username_ok = _equal(username, settings.admin_username)
    if settings.admin_password_hash:
        password_ok = verify_password(password, settings.admin_password_hash)
    else:
        password_ok = _equal(password, settings.admin_password)
    return username_ok and password_ok
