"""Request, response and result containers passed between dispatcher and transport."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from chirp_sdk.exceptions import ChirpError

T = TypeVar("T")

Body = bytes | str | Mapping[str, Any]
Headers = Mapping[str, str]


@dataclass(frozen=True)
class PendingRequest:
    """One outbound call, alive only while it is being dispatched."""

    method: str
    url: str
    body: Body = b""
    headers: Headers = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AsyncResponse:
    """Acknowledgment that a streamed response has started.

    Chunks are delivered out-of-band to the bridge named in the request's
    ``stream_to`` option.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an error-returning call: either a value or an error."""

    value: T | None = None
    error: ChirpError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the original error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
