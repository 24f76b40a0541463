"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for SiteCMS happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. auth_secret -> AUTH_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field checks after all fields
      are resolved from environment. Misconfiguration is logged at ERROR but
      never raised -- the auth layer runs fail-closed instead of crashing.

Security notes:
  A missing or placeholder AUTH_SECRET in production means every token is
  forgeable by anyone who has read this file. We log it loudly on every
  settings load; we do not silently generate a replacement.

  Missing ADMIN_USERNAME / ADMIN_PASSWORD locks out all logins. That is the
  intended fail-closed behaviour, also logged at ERROR.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sitecms.config")

# Value used when AUTH_SECRET is not set. Tokens signed with it are only
# acceptable in development.
PLACEHOLDER_SECRET = "default-secret-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    # DEBUG=false (the default) means production: secure cookies and
    # strict secret checks.
    debug: bool = False

    # ------------------------------------------------------------------
    # Session token
    # ------------------------------------------------------------------

    auth_secret: str = PLACEHOLDER_SECRET
    auth_cookie_name: str = "sleepyleo_auth"
    session_max_age_seconds: int = 60 * 60 * 24 * 7

    # ------------------------------------------------------------------
    # Admin identity (exactly one, no user table)
    # ------------------------------------------------------------------

    admin_username: str = ""
    admin_password: str = ""
    # Optional bcrypt hash; takes precedence over admin_password when set.
    admin_password_hash: str = ""

    # ------------------------------------------------------------------
    # Login rate limiting
    # ------------------------------------------------------------------

    login_window_seconds: int = 15 * 60
    login_max_failures: int = 10
    login_purge_interval_seconds: int = 5 * 60

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    @property
    def secure_cookies(self) -> bool:
        """Cookies carry the Secure attribute outside development."""
        return not self.debug

    @property
    def admin_configured(self) -> bool:
        return bool(self.admin_username) and bool(self.admin_password or self.admin_password_hash)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def report_misconfiguration(self) -> "Settings":
        """Log deployment mistakes without refusing to start.

        The secret is not replaced or corrected here. A placeholder secret in
        dev mode is tolerated with a warning so local runs stay zero-config.
        """
        if not self.auth_secret or self.auth_secret == PLACEHOLDER_SECRET:
            if not self.auth_secret:
                self.auth_secret = PLACEHOLDER_SECRET
            if self.debug:
                logger.warning("AUTH_SECRET is not set; using the placeholder secret (dev mode).")
            else:
                logger.error(
                    "AUTH_SECRET is missing or still set to the default value in production! "
                    "Session tokens can be forged until it is configured."
                )
        elif len(self.auth_secret) < 32:
            logger.error("AUTH_SECRET is shorter than 32 characters; HMAC key entropy is weak.")

        if not self.admin_configured:
            logger.error("Admin credentials not configured -- all logins will be rejected.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
