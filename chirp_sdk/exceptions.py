"""Public exceptions for the Chirp SDK."""


class ChirpError(Exception):
    """Base exception for all Chirp SDK errors."""


class AuthError(ChirpError):
    """Token acquisition failed."""

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class RequestError(ChirpError):
    """Transport-level failure on a single call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StreamError(ChirpError):
    """Upstream failure in the middle of a streamed response."""
