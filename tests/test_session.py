"""Unit tests for SessionGate (auth/session.py) and the login service (auth/service.py).

Uses MemoryCookieStore and FakeClock from conftest -- no HTTP involved.

Covers:
- attach() cookie attributes: httponly, samesite=lax, 7-day max-age, path=/,
  secure only outside debug mode
- is_authenticated(): absent cookie, valid token, forged token
- login(): success issues + attaches a token and clears failures
- login(): bad credentials record a failure and attach nothing
- login(): a limited client is rejected even with correct credentials
- Collaborator failures propagate and do not count as failures
- Parallel logins at threshold-1: only one reaches the credential check
"""

import threading
import time

import pytest

from auth import service
from auth.limiter import LoginRateLimiter
from auth.session import SessionGate
from auth.tokens import issue_session_token
from core.config import Settings


@pytest.fixture
def gate(cookies, settings) -> SessionGate:
    return SessionGate(cookies, settings=settings)


@pytest.fixture
def limiter(clock) -> LoginRateLimiter:
    return LoginRateLimiter(clock=clock)


# ---------------------------------------------------------------------------
# Session gate
# ---------------------------------------------------------------------------


class TestSessionGate:
    def test_no_cookie_is_unauthenticated(self, gate):
        assert gate.current_token() is None
        assert gate.is_authenticated() is False

    def test_attach_then_authenticated(self, gate, settings):
        gate.attach(issue_session_token(settings.auth_secret))
        assert gate.is_authenticated() is True

    def test_attach_cookie_attributes(self, gate, cookies, settings):
        gate.attach("token")
        attrs = cookies.attributes[settings.auth_cookie_name]
        assert attrs.httponly is True
        assert attrs.samesite == "lax"
        assert attrs.max_age == 60 * 60 * 24 * 7
        assert attrs.path == "/"
        assert attrs.secure is False  # debug=True in the fixture

    def test_secure_cookie_in_production(self, cookies, settings):
        prod = settings.model_copy(update={"debug": False})
        SessionGate(cookies, settings=prod).attach("token")
        assert cookies.attributes[prod.auth_cookie_name].secure is True

    def test_cookie_from_other_secret_rejected(self, gate):
        gate.attach(issue_session_token("some-other-secret-0123456789abcdef0123"))
        assert gate.is_authenticated() is False

    def test_garbage_cookie_rejected(self, gate):
        gate.attach("garbage")
        assert gate.is_authenticated() is False

    def test_detach(self, gate, cookies, settings):
        gate.attach(issue_session_token(settings.auth_secret))
        gate.detach()
        assert settings.auth_cookie_name not in cookies.values
        assert gate.is_authenticated() is False

    def test_authenticate_uses_settings(self, gate):
        assert gate.authenticate("admin", "s3cret-pass") is True
        assert gate.authenticate("admin", "wrong") is False

    def test_custom_credential_check(self, cookies, settings):
        gate = SessionGate(cookies, settings=settings, credentials=lambda u, p: u == "x")
        assert gate.authenticate("x", "anything") is True


# ---------------------------------------------------------------------------
# Login service
# ---------------------------------------------------------------------------


class TestLoginService:
    def test_success(self, gate, limiter, cookies, settings):
        limiter.record_failure("c")
        result = service.login(gate, limiter, "c", "admin", "s3cret-pass")
        assert result.accepted is True
        assert result.reason == "ok"
        assert cookies.values[settings.auth_cookie_name] == result.token
        assert limiter.get_entry("c") is None
        assert service.is_authenticated(gate) is True

    def test_bad_credentials(self, gate, limiter, cookies):
        result = service.login(gate, limiter, "c", "admin", "wrong")
        assert result.accepted is False
        assert result.reason == "bad_credentials"
        assert result.token is None
        assert cookies.values == {}
        assert limiter.get_entry("c").failure_count == 1

    def test_limited_client_rejected_with_correct_credentials(self, gate, limiter, clock):
        for _ in range(10):
            service.login(gate, limiter, "c", "admin", "wrong")
        result = service.login(gate, limiter, "c", "admin", "s3cret-pass")
        assert result.accepted is False
        assert result.reason == "rate_limited"
        assert result.retry_after_seconds == 900
        # Rejections while limited are not counted as failures
        assert limiter.get_entry("c").failure_count == 10

    def test_limit_lifts_after_window(self, gate, limiter, clock):
        for _ in range(10):
            service.login(gate, limiter, "c", "admin", "wrong")
        clock.advance(901)
        assert service.login(gate, limiter, "c", "admin", "s3cret-pass").accepted is True

    def test_unconfigured_admin_locks_everyone_out(self, cookies, limiter):
        s = Settings(_env_file=None, debug=True, admin_username="", admin_password="")
        gate = SessionGate(cookies, settings=s)
        assert service.login(gate, limiter, "c", "", "").accepted is False

    def test_logout(self, gate, limiter):
        service.login(gate, limiter, "c", "admin", "s3cret-pass")
        service.logout(gate)
        assert service.is_authenticated(gate) is False

    def test_credential_collaborator_failure_propagates(self, cookies, settings, limiter):
        def broken(username, password):
            raise RuntimeError("credential store down")

        gate = SessionGate(cookies, settings=settings, credentials=broken)
        with pytest.raises(RuntimeError):
            service.login(gate, limiter, "c", "admin", "s3cret-pass")
        assert limiter.get_entry("c") is None

    def test_cookie_collaborator_failure_propagates(self, settings, limiter):
        class BrokenStore:
            def get(self, name):
                return None

            def set(self, name, value, attributes):
                raise OSError("cookie store unavailable")

            def delete(self, name):
                raise OSError("cookie store unavailable")

        gate = SessionGate(BrokenStore(), settings=settings)
        with pytest.raises(OSError):
            service.login(gate, limiter, "c", "admin", "s3cret-pass")
        with pytest.raises(OSError):
            service.logout(gate)

    def test_parallel_guesses_cannot_pass_threshold(self, cookies, settings, limiter):
        """Eight simultaneous guesses at 9 failures: one credential check, then limited."""
        for _ in range(9):
            limiter.record_failure("c")

        checks = []
        release = threading.Event()

        def slow_wrong_password(username, password):
            checks.append(username)
            release.wait(timeout=5)
            return False

        gate = SessionGate(cookies, settings=settings, credentials=slow_wrong_password)
        results = []

        def attempt():
            results.append(service.login(gate, limiter, "c", "admin", "guess"))

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for t in threads:
            t.start()
        # Wait until everyone who is not stuck in the credential check has returned.
        deadline = time.monotonic() + 5
        while len(results) < 7 and time.monotonic() < deadline:
            time.sleep(0.01)
        release.set()
        for t in threads:
            t.join()

        assert len(checks) == 1
        assert sorted(r.reason for r in results) == ["bad_credentials"] + ["rate_limited"] * 7
        assert limiter.get_entry("c").failure_count == 10
