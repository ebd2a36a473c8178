"""Pull-based bridge over a pushed, chunked HTTP response.

The transport pushes chunks from its own delivery thread; the consumer pulls
them with ``next()`` (or a ``for`` loop) at its own pace. At most one chunk is
held ahead of the consumer: after each delivery the transport waits until the
bridge calls ``upstream.resume()``, which only happens once the buffered chunk
has been handed out.

Call ``stop()`` (or use the bridge as a context manager) when done with a
stream. The delivery thread only holds the bridge weakly, so a bridge that is
dropped without being stopped cancels its connection when it is collected.

Example:
    result = dispatcher.stage("GET", "https://stream.example.com/1.1/statuses/sample.json")
    with result.unwrap() as bridge:
        for chunk in bridge:
            handle(chunk)
"""

import threading
import weakref
from typing import Literal, Protocol

from chirp_sdk.exceptions import StreamError

BridgeState = Literal["open", "closed", "errored"]

_EMPTY = object()
_END = object()


class Upstream(Protocol):
    """Signals a bridge can send back to the transport."""

    def resume(self) -> None: ...

    def cancel(self) -> None: ...


class StreamBridge:
    """Push-to-pull adapter for one streamed response."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._slot: object = _EMPTY
        self._terminal: object = None
        self._error: StreamError | None = None
        self._state: BridgeState = "open"
        self._upstream: weakref.ReferenceType[Upstream] | None = None

    @classmethod
    def start(cls) -> "StreamBridge":
        """Create a new, empty bridge in the open state."""
        return cls()

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def buffered(self) -> int:
        """Number of chunks held ahead of the consumer (0 or 1)."""
        with self._cond:
            return 0 if self._slot is _EMPTY else 1

    # =========================================================================
    # Producer side (transport delivery thread)
    # =========================================================================

    def attach(self, upstream: Upstream) -> None:
        """Register the transport handle that receives resume/cancel signals."""
        with self._cond:
            self._upstream = weakref.ref(upstream)

    def deliver(self, chunk: bytes) -> bool:
        """Offer one chunk to the bridge.

        Returns:
            True if the chunk was buffered. False if the slot is still full
            (the transport delivered before being resumed) or the bridge is
            no longer open, in which case the chunk is dropped.
        """
        with self._cond:
            if self._state != "open" or self._terminal is not None:
                return False
            if self._slot is not _EMPTY:
                return False
            self._slot = chunk
            self._cond.notify_all()
            return True

    def finish(self) -> None:
        """Signal end-of-stream."""
        self._terminate(_END)

    def fail(self, error: StreamError) -> None:
        """Signal a transport error; it is raised once on the next pull."""
        self._terminate(error)

    def _terminate(self, signal: object) -> None:
        with self._cond:
            if self._state != "open" or self._terminal is not None:
                return
            self._terminal = signal
            if self._slot is _EMPTY:
                self._apply_terminal()
            self._cond.notify_all()

    def _apply_terminal(self) -> None:
        # Caller holds self._cond.
        if isinstance(self._terminal, StreamError):
            self._error = self._terminal
            self._state = "errored"
        else:
            self._state = "closed"
        self._terminal = None
        self._upstream = None

    # =========================================================================
    # Consumer side
    # =========================================================================

    def __iter__(self) -> "StreamBridge":
        return self

    def __next__(self) -> bytes:
        """Pull the next chunk, blocking until one is available.

        Raises:
            StopIteration: The stream has ended or was stopped.
            StreamError: The upstream failed; raised once, then the bridge
                is closed.
        """
        with self._cond:
            while self._state == "open" and self._slot is _EMPTY:
                self._cond.wait()

            if self._slot is not _EMPTY:
                chunk = self._slot
                self._slot = _EMPTY
                if self._terminal is not None:
                    self._apply_terminal()
                upstream = self._upstream() if self._upstream is not None else None
            elif self._state == "errored":
                error = self._error
                self._error = None
                self._state = "closed"
                raise error  # type: ignore[misc]
            else:
                raise StopIteration

        if upstream is not None:
            upstream.resume()
        return chunk  # type: ignore[return-value]

    def stop(self) -> None:
        """Close the bridge and cancel the upstream connection.

        Safe to call any number of times. Pending pulls return end-of-stream.
        """
        with self._cond:
            upstream = self._upstream() if self._upstream is not None else None
            self._upstream = None
            self._slot = _EMPTY
            self._terminal = None
            self._error = None
            self._state = "closed"
            self._cond.notify_all()

        if upstream is not None:
            upstream.cancel()

    def __enter__(self) -> "StreamBridge":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
