"""Tests for public exceptions."""

import pytest

from chirp_sdk.exceptions import AuthError, ChirpError, RequestError, StreamError


class TestChirpError:
    """Tests for base ChirpError."""

    def test_is_exception(self):
        """ChirpError should be an Exception."""
        assert issubclass(ChirpError, Exception)

    def test_can_be_raised(self):
        """ChirpError should be raisable with message."""
        with pytest.raises(ChirpError) as exc_info:
            raise ChirpError("test error")
        assert str(exc_info.value) == "test error"


class TestAuthError:
    """Tests for AuthError."""

    def test_inherits_from_chirp_error(self):
        """AuthError should inherit from ChirpError."""
        assert issubclass(AuthError, ChirpError)

    def test_with_message_only(self):
        """Should create error with message only."""
        error = AuthError("Token request failed")
        assert str(error) == "Token request failed"
        assert error.reason is None
        assert error.status_code is None

    def test_with_reason_and_status(self):
        """Should store reason and status code."""
        error = AuthError("Token request failed", reason="invalid_grant", status_code=400)
        assert error.reason == "invalid_grant"
        assert error.status_code == 400


class TestRequestError:
    """Tests for RequestError."""

    def test_inherits_from_chirp_error(self):
        """RequestError should inherit from ChirpError."""
        assert issubclass(RequestError, ChirpError)

    def test_with_status_code(self):
        """Should store status code."""
        error = RequestError("Not found", status_code=404)
        assert str(error) == "Not found"
        assert error.status_code == 404

    def test_can_be_caught_as_chirp_error(self):
        """Should be catchable as ChirpError."""
        with pytest.raises(ChirpError):
            raise RequestError("API error", status_code=500)


class TestStreamError:
    """Tests for StreamError."""

    def test_inherits_from_chirp_error(self):
        """StreamError should inherit from ChirpError."""
        assert issubclass(StreamError, ChirpError)

    def test_can_be_raised(self):
        """Should be raisable with message."""
        with pytest.raises(StreamError) as exc_info:
            raise StreamError("connection reset")
        assert str(exc_info.value) == "connection reset"
