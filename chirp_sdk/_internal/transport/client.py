"""httpx transport used by the dispatcher.

Handles the token handshake, buffered requests, and streamed requests whose
chunks are pushed into a StreamBridge from a background delivery thread.
"""

import sys
import threading
import weakref
from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any

import httpx

from chirp_sdk._internal.http import (
    DEFAULT_BASE_URL,
    create_http_client,
    shutdown_response,
    stream_timeout,
)
from chirp_sdk._internal.redaction import mask_secret, redact_payload
from chirp_sdk._internal.transport.auth import TokenAuth
from chirp_sdk.config import DEFAULT_TIMEOUT_MS, ChirpConfig
from chirp_sdk.exceptions import AuthError, RequestError, StreamError
from chirp_sdk.models.auth import BEARER, Token
from chirp_sdk.models.requests import AsyncResponse, Body
from chirp_sdk.stream import StreamBridge

TOKEN_PATH = "/oauth2/token"

# Sentinel for "option not given"; None is a meaningful recv_timeout.
_UNSET = object()


class Transport:
    """Concrete HTTP transport built on httpx.

    Use `Transport.from_config()` to build one from a `ChirpConfig`.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        consumer_key: str | None = None,
        consumer_secret: str | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        debug: bool = False,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: API root that relative URLs are resolved against.
            consumer_key: Application consumer key for the token endpoint.
            consumer_secret: Application consumer secret for the token endpoint.
            timeout_ms: Default request timeout in milliseconds.
            debug: Enable debug logging to stderr.
            http_client: Pre-built client; one is created when omitted.
        """
        self._consumer_key = consumer_key
        self._consumer_secret = consumer_secret
        self._timeout_ms = timeout_ms
        self._debug = debug
        self._client = http_client or create_http_client(
            timeout=timeout_ms / 1000, base_url=base_url
        )
        self._streams: weakref.WeakSet[_StreamHandle] = weakref.WeakSet()
        self._streams_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ChirpConfig) -> "Transport":
        """Create a transport from a configuration object."""
        return cls(
            base_url=config.base_url,
            consumer_key=config.consumer_key,
            consumer_secret=(
                config.consumer_secret.get_secret_value() if config.consumer_secret else None
            ),
            timeout_ms=config.timeout_ms,
            debug=config.debug,
        )

    def _log_debug(self, message: str) -> None:
        """Log a debug message to stderr if debug mode is enabled."""
        if self._debug:
            print(f"[chirp-sdk:transport] {message}", file=sys.stderr)

    def close(self) -> None:
        """Close the HTTP client, aborting streams that are still open.

        Consumers of an aborted stream get a StreamError on their next pull.
        """
        with self._streams_lock:
            streams = list(self._streams)
        for handle in streams:
            handle.cancel(StreamError("Transport closed"))
        self._client.close()

    # =========================================================================
    # Token handshake
    # =========================================================================

    def get_token(self, username: str | None = None, password: str | None = None) -> Token:
        """Obtain a bearer token from the token endpoint.

        With both username and password a password grant is requested,
        otherwise an app-only client-credentials grant.

        Raises:
            AuthError: The endpoint refused the grant or could not be reached.
        """
        if not self._consumer_key or not self._consumer_secret:
            raise AuthError("Consumer key and secret are not configured", reason="invalid_client")

        if username and password:
            data = {"grant_type": "password", "username": username, "password": password}
        else:
            data = {"grant_type": "client_credentials"}

        self._log_debug(f"Requesting token: grant_type={data['grant_type']}")
        try:
            response = self._client.post(
                TOKEN_PATH,
                data=data,
                auth=(self._consumer_key, self._consumer_secret),
            )
        except httpx.TimeoutException as e:
            raise AuthError("Token request timed out", reason="transport_error") from e
        except httpx.HTTPError as e:
            raise AuthError(f"Token request failed: {e}", reason="transport_error") from e

        if response.status_code < 200 or response.status_code >= 300:
            reason = _error_reason(response)
            self._log_debug(f"Token request failed with status {response.status_code}: {reason}")
            raise AuthError(
                f"Token request failed: {reason}",
                reason=reason,
                status_code=response.status_code,
            )

        try:
            token = Token.model_validate(response.json())
        except ValueError as e:
            raise AuthError(
                "Malformed token response",
                reason="invalid_response",
                status_code=response.status_code,
            ) from e

        if token.token_type.lower() != BEARER:
            raise AuthError(
                f"Unsupported token type: {token.token_type}",
                reason="unsupported_token_type",
                status_code=response.status_code,
            )

        self._log_debug(f"Token acquired: {mask_secret(token.access_token.get_secret_value())}")
        return token

    # =========================================================================
    # Requests
    # =========================================================================

    def request(
        self,
        method: str,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> httpx.Response | AsyncResponse:
        """Send one request.

        Options:
            auth: Token attached as a bearer Authorization header.
            params: Query parameters.
            recv_timeout: Read timeout in seconds; None disables it.
            stream_to: StreamBridge receiving the response chunks. When set,
                this returns an AsyncResponse as soon as the response headers
                have arrived.

        Raises:
            RequestError: Network failure or an HTTP error status.
        """
        options = dict(options or {})
        request = self._build_request(method, url, body, headers, options)
        auth = TokenAuth(options["auth"]) if isinstance(options.get("auth"), Token) else None

        self._log_debug(
            f"{request.method} {request.url} headers={redact_payload(dict(request.headers))}"
        )

        bridge = options.get("stream_to")
        if isinstance(bridge, StreamBridge):
            return self._start_stream(request, auth, bridge)

        try:
            response = self._client.send(request, auth=auth)
        except httpx.TimeoutException as e:
            raise RequestError(f"{request.method} {request.url} timed out") from e
        except httpx.HTTPError as e:
            raise RequestError(f"{request.method} {request.url} failed: {e}") from e

        _raise_for_status(response)
        self._log_debug(f"Response {response.status_code} ({len(response.content)} bytes)")
        return response

    def _build_request(
        self,
        method: str,
        url: str,
        body: Body,
        headers: Mapping[str, str] | None,
        options: dict[str, Any],
    ) -> httpx.Request:
        kwargs: dict[str, Any] = {
            "headers": dict(headers or {}),
            "params": options.get("params"),
        }
        if isinstance(body, Mapping):
            if body:
                kwargs["data"] = dict(body)
        elif body:
            kwargs["content"] = body

        recv_timeout = options.get("recv_timeout", _UNSET)
        if recv_timeout is not _UNSET:
            kwargs["timeout"] = stream_timeout(self._timeout_ms / 1000, read=recv_timeout)
        return self._client.build_request(method.upper(), url, **kwargs)

    # =========================================================================
    # Streaming
    # =========================================================================

    def _start_stream(
        self,
        request: httpx.Request,
        auth: httpx.Auth | None,
        bridge: StreamBridge,
    ) -> AsyncResponse:
        """Open a streamed response and hand its chunks to ``bridge``.

        Blocks until the response headers arrive, then returns while a
        delivery thread keeps feeding the bridge. The thread holds the bridge
        weakly, so a bridge dropped without ``stop()`` still cancels its stream
        once it is garbage collected.
        """
        ready: Future[AsyncResponse] = Future()
        handle = _StreamHandle(bridge)
        with self._streams_lock:
            self._streams.add(handle)
        thread = threading.Thread(
            target=self._deliver,
            args=(request, auth, handle, ready),
            name=f"chirp-stream {request.url.path}",
            daemon=True,
        )
        thread.start()
        return ready.result()

    def _deliver(
        self,
        request: httpx.Request,
        auth: httpx.Auth | None,
        handle: "_StreamHandle",
        ready: Future[AsyncResponse],
    ) -> None:
        response: httpx.Response | None = None
        try:
            response = self._client.send(request, auth=auth, stream=True)
            handle.bind(response)

            if response.is_error:
                response.read()
                _raise_for_status(response)

            ready.set_result(
                AsyncResponse(status_code=response.status_code, headers=dict(response.headers))
            )
            self._log_debug(f"Stream opened: {request.method} {request.url}")

            for chunk in response.iter_bytes():
                if not handle.wait_for_demand():
                    self._log_debug("Stream cancelled")
                    return
                if not handle.deliver(chunk):
                    self._log_debug("Bridge refused chunk, closing stream")
                    return

            self._log_debug("Stream ended")

        except RequestError as e:
            ready.set_exception(e)
        except Exception as e:
            if not ready.done():
                error = RequestError(f"{request.method} {request.url} failed: {e}")
                error.__cause__ = e
                ready.set_exception(error)
            elif handle.cancelled:
                self._log_debug(f"Stream closed after cancel: {e}")
            else:
                self._log_debug(f"Stream error: {e}")
                error = StreamError(f"Stream {request.url} failed: {e}")
                error.__cause__ = e
                handle.fail(error)
        finally:
            if response is not None:
                response.close()
            if not ready.done():
                ready.set_exception(RequestError(f"{request.method} {request.url} aborted"))
            handle.release()
            with self._streams_lock:
                self._streams.discard(handle)


class _StreamHandle:
    """Upstream side of a bridge: demand signal and cancellation.

    The bridge is referenced weakly. Collecting it cancels the stream.
    """

    def __init__(self, bridge: StreamBridge) -> None:
        # One chunk may be delivered before the first resume.
        self._demand = threading.Event()
        self._demand.set()
        # Reentrant: the bridge finalizer may run on the delivery thread.
        self._lock = threading.RLock()
        self._response: httpx.Response | None = None
        self._abort_error: StreamError | None = None
        self._bridge = weakref.ref(bridge)
        self.cancelled = False
        bridge.attach(self)
        self._finalizer = weakref.finalize(bridge, self.cancel)

    def bind(self, response: httpx.Response) -> None:
        with self._lock:
            self._response = response
            cancelled = self.cancelled
        if cancelled:
            shutdown_response(response)
            response.close()

    def wait_for_demand(self) -> bool:
        """Block until the bridge asks for another chunk.

        Returns:
            False if the stream was cancelled while waiting.
        """
        self._demand.wait()
        if self.cancelled:
            return False
        self._demand.clear()
        return True

    def deliver(self, chunk: bytes) -> bool:
        bridge = self._bridge()
        return bridge is not None and bridge.deliver(chunk)

    def fail(self, error: StreamError) -> None:
        bridge = self._bridge()
        if bridge is not None:
            bridge.fail(error)

    def release(self) -> None:
        """Terminate the bridge once delivery has stopped.

        A stream aborted by its transport fails the bridge; any other ending
        is end-of-stream. Both are no-ops if the bridge already terminated.
        """
        self._finalizer.detach()
        bridge = self._bridge()
        if bridge is None:
            return
        if self._abort_error is not None:
            bridge.fail(self._abort_error)
        else:
            bridge.finish()

    def resume(self) -> None:
        self._demand.set()

    def cancel(self, error: StreamError | None = None) -> None:
        """Stop delivery and close the connection.

        Shutting the socket down wakes a delivery thread blocked on an idle
        stream, which closing the response alone does not.
        """
        with self._lock:
            if self.cancelled:
                return
            self.cancelled = True
            self._abort_error = error
            response = self._response
        self._demand.set()
        if response is not None:
            shutdown_response(response)
            response.close()


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_error:
        raise RequestError(
            f"{response.request.method} {response.request.url} returned "
            f"{response.status_code}: {_error_reason(response)}",
            status_code=response.status_code,
        )


def _error_reason(response: httpx.Response) -> str:
    """Pull the most specific error reason out of an error response."""
    try:
        data = response.json()
    except ValueError:
        return f"http_{response.status_code}"

    if isinstance(data, dict):
        if isinstance(data.get("error"), str):
            return data["error"]
        errors = data.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            first = errors[0]
            reason = first.get("label") or first.get("message")
            if reason:
                return str(reason)
    return f"http_{response.status_code}"
