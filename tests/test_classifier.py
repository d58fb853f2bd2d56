"""
Tests for error classifier
==========================
"""

import asyncio

import pytest
import requests
from resilient_ai.providers import (
    ErrorClassifier,
    ErrorKind,
    TransientProviderError,
    PermanentProviderError,
    classify_status_code,
    extract_status_code,
)


class StatusError(Exception):
    """Exception carrying an SDK-style status code."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def http_error(status_code: int) -> requests.HTTPError:
    response = requests.Response()
    response.status_code = status_code
    return requests.HTTPError(f"{status_code} error", response=response)


class TestStatusCodes:
    """Tests for status code classification."""

    @pytest.mark.parametrize("code", [408, 429, 500, 502, 503, 504, 529])
    def test_transient_codes(self, code):
        assert classify_status_code(code) == ErrorKind.TRANSIENT

    @pytest.mark.parametrize("code", [400, 401, 403, 404, 422])
    def test_permanent_codes(self, code):
        assert classify_status_code(code) == ErrorKind.PERMANENT

    def test_other_5xx_is_transient(self):
        assert classify_status_code(599) == ErrorKind.TRANSIENT

    def test_extract_from_response(self):
        assert extract_status_code(http_error(503)) == 503

    def test_extract_ignores_non_codes(self):
        error = Exception("boom")
        error.status = True
        assert extract_status_code(error) is None


class TestErrorClassifier:
    """Tests for ErrorClassifier."""

    def setup_method(self):
        self.classifier = ErrorClassifier()

    def test_adapter_declared_kind_wins(self):
        error = self.classifier.classify("a", PermanentProviderError("rate limit? no", status_code=0))
        assert error.kind == ErrorKind.PERMANENT

        error = self.classifier.classify("a", TransientProviderError("overloaded", status_code=529))
        assert error.is_transient
        assert error.status_code == 529

    def test_http_errors(self):
        assert self.classifier.classify("a", http_error(429)).is_transient
        assert self.classifier.classify("a", http_error(503)).is_transient
        assert self.classifier.classify("a", http_error(401)).is_permanent
        assert self.classifier.classify("a", http_error(403)).is_permanent

    def test_sdk_style_status_attribute(self):
        error = self.classifier.classify("a", StatusError("bad request", 400))
        assert error.is_permanent
        assert error.status_code == 400

    @pytest.mark.parametrize("exc", [
        TimeoutError("slow"),
        asyncio.TimeoutError(),
        requests.Timeout("read timeout"),
        ConnectionResetError("reset by peer"),
        requests.ConnectionError("refused"),
    ])
    def test_timeouts_and_connection_errors_are_transient(self, exc):
        error = self.classifier.classify("a", exc)
        assert error.is_transient
        assert error.status_code == 0

    @pytest.mark.parametrize("exc", [
        requests.exceptions.MissingSchema("no scheme supplied"),
        requests.exceptions.InvalidSchema("no connection adapters"),
        requests.exceptions.InvalidURL("bad host"),
        requests.exceptions.InvalidHeader("bad header value"),
        requests.exceptions.URLRequired("a valid URL is required"),
    ])
    def test_malformed_requests_are_permanent(self, exc):
        error = self.classifier.classify("a", exc)
        assert error.is_permanent
        assert error.status_code == 0

    def test_message_patterns(self):
        assert self.classifier.classify("a", RuntimeError("Invalid API key provided")).is_permanent
        assert self.classifier.classify("a", RuntimeError("Rate limit reached")).is_transient

    def test_unknown_defaults_to_transient(self):
        error = self.classifier.classify("a", ValueError("something odd"))
        assert error.kind == ErrorKind.TRANSIENT
        assert error.status_code == 0

    def test_classified_error_fields(self):
        cause = http_error(401)
        error = self.classifier.classify("primary", cause)
        assert error.provider == "primary"
        assert error.cause is cause
        assert error.to_dict()["kind"] == "permanent"
        assert str(error).startswith("primary: permanent 401")

    def test_empty_message_uses_type_name(self):
        error = self.classifier.classify("a", asyncio.TimeoutError())
        assert error.message
