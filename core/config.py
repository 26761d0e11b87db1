"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for CredGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  Explicit hand-off: auth/ never calls get_settings(). The API lifespan and the
      CLI read the Settings object once and pass the values (secret, horizon,
      work factor) into the components they construct. Tests build their own
      Settings(...) with an isolated secret.

Security notes:
  SECRET_KEY is mandatory in every mode. A missing or empty key is a hard
      startup failure -- the service must not accept traffic with an unsigned
      or randomly re-keyed token scheme.

  SECRET_KEY shorter than 32 chars is rejected outright. HS256 signing relies
      on key entropy -- a short key makes offline brute force of issued tokens
      practical.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("credgate.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'credgate_auth.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except secret_key has a default. Settings() therefore fails
    fast when SECRET_KEY is not provided, which is the intended startup
    behaviour.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `bcrypt_rounds` from BCRYPT_ROUNDS.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured"; the validator below
    # turns it into a startup error.
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Fixed session horizon. Also bounds how long a stale role claim can live.
    token_expire_seconds: int = Field(default=24 * 3600, gt=0)
    # bcrypt cost factor: 2**rounds iterations. bcrypt accepts 4..31.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    login_rate_limit: str = "10/minute"
    register_rate_limit: str = "5/minute"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Refuse to build a Settings object without a usable signing secret.

        There is no development fallback: tokens minted with a random key
        would silently stop verifying after a restart, and a deployment that
        forgot SECRET_KEY must not come up at all.
        """
        if not self.secret_key or not self.secret_key.strip():
            raise ValueError(
                "SECRET_KEY is required. Set SECRET_KEY in your environment or .env file "
                "(at least 32 characters, e.g. the output of `openssl rand -hex 32`)."
            )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.debug:
            logger.warning("DEBUG mode enabled -- do not run this configuration in production.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All entry points should call get_settings() rather than constructing
    Settings() directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
