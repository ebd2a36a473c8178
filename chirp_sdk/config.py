"""Configuration object for dispatchers and transports."""

import os

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from chirp_sdk._internal.http import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

DEFAULT_TIMEOUT_MS = int(DEFAULT_TIMEOUT * 1000)


class ChirpConfig(BaseModel):
    """Settings read once when a dispatcher starts.

    Nothing here is looked up implicitly: build it directly, or call
    `ChirpConfig.from_env()` before starting a dispatcher.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_BASE_URL
    consumer_key: str | None = None
    consumer_secret: SecretStr | None = None
    username: str | None = None
    password: SecretStr | None = None
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "ChirpConfig":
        """Create a configuration from environment variables.

        Optional environment variables:
            CHIRP_BASE_URL: API root (default: https://api.twitter.com).
            CHIRP_CONSUMER_KEY: Application consumer key.
            CHIRP_CONSUMER_SECRET: Application consumer secret.
            CHIRP_USERNAME: Default username for password-grant tokens.
            CHIRP_PASSWORD: Default password for password-grant tokens.
            CHIRP_TIMEOUT_MS: Request timeout in milliseconds.
            CHIRP_DEBUG: Set to "1" to enable debug logging.

        Returns:
            A ChirpConfig. Missing variables fall back to defaults.

        Raises:
            ValueError: If CHIRP_TIMEOUT_MS is not a valid integer.
        """
        consumer_secret = os.environ.get("CHIRP_CONSUMER_SECRET")
        password = os.environ.get("CHIRP_PASSWORD")

        return cls(
            base_url=os.environ.get("CHIRP_BASE_URL") or DEFAULT_BASE_URL,
            consumer_key=os.environ.get("CHIRP_CONSUMER_KEY"),
            consumer_secret=SecretStr(consumer_secret) if consumer_secret else None,
            username=os.environ.get("CHIRP_USERNAME"),
            password=SecretStr(password) if password else None,
            timeout_ms=int(os.environ.get("CHIRP_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))),
            debug=os.environ.get("CHIRP_DEBUG", "") == "1",
        )
