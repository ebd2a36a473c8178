"""Shared HTTP client configuration."""

import socket

import httpx

from chirp_sdk._version import __version__

DEFAULT_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_BASE_URL = "https://api.twitter.com"


def create_http_client(
    *,
    timeout: float = DEFAULT_TIMEOUT,
    base_url: str | None = None,
) -> httpx.Client:
    """Create configured HTTP client.

    Connecting never waits longer than DEFAULT_CONNECT_TIMEOUT, even when the
    overall request timeout is larger.

    Args:
        timeout: Request timeout in seconds.
        base_url: Optional base URL for all requests.

    Returns:
        Configured httpx.Client instance.
    """
    return httpx.Client(
        timeout=httpx.Timeout(timeout, connect=min(timeout, DEFAULT_CONNECT_TIMEOUT)),
        base_url=base_url or "",
        headers={"User-Agent": f"chirp-sdk/{__version__}"},
    )


def stream_timeout(timeout: float = DEFAULT_TIMEOUT, *, read: float | None = None) -> httpx.Timeout:
    """Timeout for a long-lived streamed response.

    Connect, write and pool waits stay bounded; the read timeout is ``read``
    (None lets the stream sit idle indefinitely).
    """
    return httpx.Timeout(timeout, connect=min(timeout, DEFAULT_CONNECT_TIMEOUT), read=read)


def shutdown_response(response: httpx.Response) -> None:
    """Shut down the socket under a streamed response.

    Closing the response alone does not wake a thread blocked reading from
    it; shutting the socket down does, and sends FIN to the server.
    """
    network_stream = response.extensions.get("network_stream")
    if network_stream is None:
        return
    sock = network_stream.get_extra_info("socket")
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
