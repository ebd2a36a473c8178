"""httpx transport: token handshake, buffered and streamed requests."""

from chirp_sdk._internal.transport.auth import TokenAuth
from chirp_sdk._internal.transport.client import TOKEN_PATH, Transport

__all__ = ["Transport", "TokenAuth", "TOKEN_PATH"]
