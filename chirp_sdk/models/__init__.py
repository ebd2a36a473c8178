"""Public models for the Chirp SDK."""

from chirp_sdk.models.auth import Credentials, Token
from chirp_sdk.models.requests import AsyncResponse, PendingRequest, Result

__all__ = ["Token", "Credentials", "AsyncResponse", "PendingRequest", "Result"]
