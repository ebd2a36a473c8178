"""Authenticated, serialized gateway for all outbound calls of one client identity.

A Dispatcher acquires a bearer token once at startup and holds it for its
entire lifetime. Every call is queued to the dispatcher's single worker
thread, which attaches the token and hands the request to the transport, so
calls against one instance are totally ordered while separate instances run
independently.

Example:
    config = ChirpConfig.from_env()
    with Dispatcher.start(config=config) as dispatcher:
        result = dispatcher.get("/1.1/search/tweets.json", options={"params": {"q": "python"}})
        if result.ok:
            print(result.value)
"""

import queue
import sys
import threading
from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any, Protocol

import httpx

from chirp_sdk._internal.redaction import mask_secret
from chirp_sdk._internal.transport import Transport
from chirp_sdk.config import ChirpConfig
from chirp_sdk.exceptions import ChirpError, RequestError
from chirp_sdk.models.auth import Credentials, Token
from chirp_sdk.models.requests import AsyncResponse, Body, PendingRequest, Result
from chirp_sdk.stream import StreamBridge

_SHUTDOWN = None


class SupportsTransport(Protocol):
    """What the dispatcher needs from a transport."""

    def get_token(self, username: str | None = None, password: str | None = None) -> Token: ...

    def request(
        self,
        method: str,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Any: ...

    def close(self) -> None: ...


class _Envelope:
    __slots__ = ("request", "future")

    def __init__(self, request: PendingRequest) -> None:
        self.request = request
        self.future: Future[Result[Any]] = Future()


class Dispatcher:
    """Token-holding gateway that serializes every call through one worker.

    Use `Dispatcher.start()` to authenticate and obtain a ready dispatcher.
    """

    def __init__(self, transport: SupportsTransport, token: Token, *, debug: bool = False) -> None:
        """Initialize a ready dispatcher around an already acquired token.

        Args:
            transport: Transport that performs the HTTP requests.
            token: Token attached to every call for this dispatcher's lifetime.
            debug: Enable debug logging to stderr.
        """
        self._transport = transport
        self._token = token
        self._debug = debug
        self._queue: queue.Queue[_Envelope | None] = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._worker = threading.Thread(target=self._run, name="chirp-dispatcher", daemon=True)
        self._worker.start()

    @classmethod
    def start(
        cls,
        transport: SupportsTransport | None = None,
        *,
        username: str | None = None,
        password: str | None = None,
        config: ChirpConfig | None = None,
    ) -> "Dispatcher":
        """Authenticate and start a dispatcher.

        An explicit username or password takes precedence over the one in
        ``config``. Empty values count as not given and fall back to
        ``config`` as well. With both present a user token is requested,
        otherwise an app-only token. Startup blocks until the handshake
        completes.

        Args:
            transport: Transport to use; built from ``config`` when omitted.
            username: Username for a password-grant token.
            password: Password for a password-grant token.
            config: Configuration object; defaults to ``ChirpConfig()``.

        Returns:
            A ready Dispatcher holding the acquired token.

        Raises:
            AuthError: Token acquisition failed. No dispatcher is created.
        """
        config = config or ChirpConfig()
        username = username or config.username
        if not password and config.password is not None:
            password = config.password.get_secret_value()

        owns_transport = transport is None
        if transport is None:
            transport = Transport.from_config(config)

        try:
            if username and password:
                credentials = Credentials(username=username, password=password)
                token = transport.get_token(
                    credentials.username, credentials.password.get_secret_value()
                )
            else:
                token = transport.get_token()
        except ChirpError:
            if owns_transport:
                transport.close()
            raise

        dispatcher = cls(transport, token, debug=config.debug)
        dispatcher._log_debug(f"Ready with token {mask_secret(token.access_token.get_secret_value())}")
        return dispatcher

    @property
    def token(self) -> Token:
        """The token acquired at startup."""
        return self._token

    @property
    def closed(self) -> bool:
        return self._closed

    def _log_debug(self, message: str) -> None:
        """Log a debug message to stderr if debug mode is enabled."""
        if self._debug:
            print(f"[chirp-sdk] {message}", file=sys.stderr)

    # =========================================================================
    # Worker
    # =========================================================================

    def _run(self) -> None:
        while True:
            envelope = self._queue.get()
            if envelope is _SHUTDOWN:
                return
            if not envelope.future.set_running_or_notify_cancel():
                continue
            try:
                envelope.future.set_result(self._handle(envelope.request))
            except Exception as e:
                envelope.future.set_exception(e)
            # The request options may hold a stream bridge; don't pin it while idle.
            del envelope

    def _handle(self, request: PendingRequest) -> Result[Any]:
        options = {**request.options, "auth": self._token}
        self._log_debug(f"Dispatching {request.method} {request.url}")
        try:
            response = self._transport.request(
                request.method, request.url, request.body, request.headers, options
            )
        except ChirpError as e:
            self._log_debug(f"{request.method} {request.url} failed: {e}")
            return Result(error=e)

        if not isinstance(response, httpx.Response):
            return Result(value=response)
        try:
            return Result(value=_decode_body(response))
        except ValueError as e:
            error = RequestError(
                f"{request.method} {request.url} returned a malformed body",
                status_code=response.status_code,
            )
            error.__cause__ = e
            return Result(error=error)

    # =========================================================================
    # Calls
    # =========================================================================

    def call(
        self,
        method: str,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Result[Any]:
        """Issue one authenticated request through the dispatcher.

        Blocks until the call reaches the front of this dispatcher's queue and
        the transport responds.

        Returns:
            Result holding the decoded response body (JSON or text), or the
            transport's value for streamed requests, or the transport error.

        Raises:
            ChirpError: The dispatcher is closed.
        """
        envelope = _Envelope(
            PendingRequest(
                method=method.upper(),
                url=url,
                body=body,
                headers=dict(headers or {}),
                options=dict(options or {}),
            )
        )
        with self._lock:
            if self._closed:
                raise ChirpError("Dispatcher is closed")
            self._queue.put(envelope)
        return envelope.future.result()

    def get(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Result[Any]:
        """Issue a GET request. Errors are returned in the Result."""
        return self.call("GET", url, b"", headers, options)

    def get_or_raise(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Any:
        """Same as `get` but raises the error instead of returning it."""
        return self.get(url, headers, options).unwrap()

    def post(
        self,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Result[Any]:
        """Issue a POST request. Errors are returned in the Result."""
        return self.call("POST", url, body, headers, options)

    def post_or_raise(
        self,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Any:
        """Same as `post` but raises the error instead of returning it."""
        return self.post(url, body, headers, options).unwrap()

    def stage(
        self,
        method: str,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Result[StreamBridge]:
        """Open a long-lived streamed response.

        The request goes through the same queue as `call`. Once the transport
        acknowledges that the response has started, the bridge is returned
        while chunks keep arriving in the background. Receive timeouts are
        disabled for the stream.

        Returns:
            Result holding the StreamBridge, or the error that prevented the
            stream from starting (the bridge is stopped in that case).
        """
        bridge = StreamBridge.start()
        options = {**(options or {}), "stream_to": bridge, "recv_timeout": None}
        try:
            result = self.call(method, url, body, headers, options)
        except BaseException:
            bridge.stop()
            raise

        if result.ok and isinstance(result.value, AsyncResponse):
            return Result(value=bridge)

        bridge.stop()
        if result.ok:
            return Result(error=RequestError(f"{method.upper()} {url} did not start a stream"))
        return Result(error=result.error)

    def stage_or_raise(
        self,
        method: str,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> StreamBridge:
        """Same as `stage` but raises the error instead of returning it."""
        return self.stage(method, url, body, headers, options).unwrap()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Finish queued calls, stop the worker and close the transport.

        Safe to call multiple times.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_SHUTDOWN)
        if threading.current_thread() is not self._worker:
            self._worker.join()
        self._transport.close()
        self._log_debug("Closed")

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _decode_body(response: httpx.Response) -> Any:
    """Return the JSON body when the response declares one, else the text."""
    content_type = response.headers.get("content-type", "")
    if "json" in content_type and response.content:
        return response.json()
    return response.text
