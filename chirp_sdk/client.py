"""Base for API clients bound to their own Dispatcher.

Subclass ChirpClient to expose narrow, named operations on top of one
authenticated identity:

    class TimelineClient(ChirpClient):
        def home(self, count: int = 20) -> Result[Any]:
            return self._get("/1.1/statuses/home_timeline.json", options={"params": {"count": count}})

    with TimelineClient.start(config=ChirpConfig.from_env()) as client:
        tweets = client.home(count=5).unwrap()
"""

from collections.abc import Mapping
from typing import Any

from chirp_sdk.config import ChirpConfig
from chirp_sdk.dispatcher import Dispatcher, SupportsTransport
from chirp_sdk.models.requests import Body, Result
from chirp_sdk.stream import StreamBridge

SEARCH_PATH = "/1.1/search/tweets.json"
FILTER_STREAM_URL = "https://stream.twitter.com/1.1/statuses/filter.json"


class ChirpClient:
    """Client that delegates every call to its own Dispatcher."""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    @classmethod
    def start(
        cls,
        transport: SupportsTransport | None = None,
        *,
        username: str | None = None,
        password: str | None = None,
        config: ChirpConfig | None = None,
    ) -> "ChirpClient":
        """Authenticate a new Dispatcher and bind it to a client.

        Raises:
            AuthError: Token acquisition failed.
        """
        dispatcher = Dispatcher.start(
            transport, username=username, password=password, config=config
        )
        return cls(dispatcher)

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def close(self) -> None:
        self._dispatcher.close()

    def __enter__(self) -> "ChirpClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # =========================================================================
    # Named Operations
    # =========================================================================

    def search(self, term: str, **params: Any) -> Result[Any]:
        """Search recent tweets.

        Args:
            term: Search query.
            **params: Extra query parameters (e.g. count=3, result_type="recent").

        Returns:
            Result holding the decoded search response.
        """
        return self._get(SEARCH_PATH, options={"params": {"q": term, **params}})

    def filter_stream(self, track: str | list[str], **params: Any) -> Result[StreamBridge]:
        """Open the filtered status stream for the given keywords.

        Args:
            track: Keyword or list of keywords to follow.
            **params: Extra form parameters (e.g. language="en").

        Returns:
            Result holding a StreamBridge of raw response chunks.
        """
        if not isinstance(track, str):
            track = ",".join(track)
        return self._stage("POST", FILTER_STREAM_URL, {"track": track, **params})

    # =========================================================================
    # Delegation
    # =========================================================================

    def _get(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Result[Any]:
        return self._dispatcher.get(url, headers, options)

    def _get_or_raise(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Any:
        return self._dispatcher.get_or_raise(url, headers, options)

    def _post(
        self,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Result[Any]:
        return self._dispatcher.post(url, body, headers, options)

    def _post_or_raise(
        self,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Any:
        return self._dispatcher.post_or_raise(url, body, headers, options)

    def _stage(
        self,
        method: str,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Result[StreamBridge]:
        return self._dispatcher.stage(method, url, body, headers, options)

    def _stage_or_raise(
        self,
        method: str,
        url: str,
        body: Body = b"",
        headers: Mapping[str, str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> StreamBridge:
        return self._dispatcher.stage_or_raise(method, url, body, headers, options)
