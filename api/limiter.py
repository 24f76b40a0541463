"""
api/limiter.py -- Shared slowapi request throttle.

Import this in both api/main.py (to mount as middleware) and
api/routes/auth.py (to apply per-route limits with @limiter.limit()).

This is a coarse outer layer that caps raw request volume per client. The
real login policy (10 FAILED attempts per 15 minutes) lives in
auth/limiter.py. Both use the same client identity so a proxy in front of
the app does not collapse every visitor into one bucket.

Using a single shared instance ensures all routes share the same in-memory
counter store.
"""

from slowapi import Limiter

from auth.dependencies import client_identity

LOGIN_REQUEST_LIMIT = "30/minute"

limiter = Limiter(key_func=client_identity, storage_uri="memory://")
