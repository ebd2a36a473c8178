"""Chirp SDK for Python.

An authenticated, long-lived client for a REST/streaming HTTP API that needs
a bearer-token handshake before any call.

Public API:
    Dispatcher - Token-holding gateway that serializes every call
    StreamBridge - Pull-based iterator over a streamed response
    ChirpClient - Base for clients bound to their own Dispatcher
    ChirpConfig - Explicit configuration object

Internal (not for direct use):
    _internal.transport - httpx transport
"""

from chirp_sdk._version import __version__
from chirp_sdk.client import ChirpClient
from chirp_sdk.config import ChirpConfig
from chirp_sdk.dispatcher import Dispatcher
from chirp_sdk.exceptions import AuthError, ChirpError, RequestError, StreamError
from chirp_sdk.models import AsyncResponse, Credentials, Result, Token
from chirp_sdk.stream import StreamBridge

__all__ = [
    "__version__",
    "Dispatcher",
    "StreamBridge",
    "ChirpClient",
    "ChirpConfig",
    "ChirpError",
    "AuthError",
    "RequestError",
    "StreamError",
    "Token",
    "Credentials",
    "AsyncResponse",
    "Result",
]
