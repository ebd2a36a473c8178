"""httpx authentication flows for the token endpoint and API calls."""

from collections.abc import Generator

import httpx

from chirp_sdk.models.auth import Token


class TokenAuth(httpx.Auth):
    """Bearer token authentication for httpx requests."""

    def __init__(self, token: Token) -> None:
        self.token = token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = self.token.authorization
        yield request
