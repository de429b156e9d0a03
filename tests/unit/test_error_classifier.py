"""
Unit tests for the error classifier.
"""

import httpx
import pytest

from pr_reviewer.failures import (
    ConnectionRefusedFailure,
    NetworkFailure,
    TimeoutFailure,
    UnexpectedFailure,
    UpstreamStatusFailure,
)
from pr_reviewer.models.error import ErrorKind
from pr_reviewer.services.error_classifier import (
    SUGGESTIONS,
    ErrorClassifier,
    format_for_api,
    format_for_cli,
)


@pytest.fixture
def classifier() -> ErrorClassifier:
    return ErrorClassifier(inference_port=11434, server_port=5000)


def _status_error(status_code: int, body: dict) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.github.com/repos/octo/hello/pulls/7")
    response = httpx.Response(status_code, json=body, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestStatusFailures:
    """Test classification of upstream HTTP statuses."""

    def test_401_is_auth_failure(self, classifier):
        result = classifier.classify(UpstreamStatusFailure(401, "Bad credentials"))

        assert result.kind == ErrorKind.AUTH_FAILURE
        assert "re-authenticate" in result.message

    def test_403_rate_limit(self, classifier):
        result = classifier.classify(UpstreamStatusFailure(403, "API rate limit exceeded for user"))

        assert result.kind == ErrorKind.RATE_LIMIT
        assert result.message.startswith("API rate limit exceeded")

    def test_403_without_rate_limit_is_not_found(self, classifier):
        result = classifier.classify(UpstreamStatusFailure(403, "Resource not accessible by integration"))

        assert result.kind == ErrorKind.RESOURCE_NOT_FOUND

    def test_404_from_raw_httpx_error(self, classifier):
        result = classifier.classify(_status_error(404, {"message": "Not Found"}))

        assert result.kind == ErrorKind.RESOURCE_NOT_FOUND
        assert result.suggestion == SUGGESTIONS[ErrorKind.RESOURCE_NOT_FOUND]

    def test_422_is_invalid_request(self, classifier):
        result = classifier.classify(UpstreamStatusFailure(422, "Validation Failed"))

        assert result.kind == ErrorKind.INVALID_REQUEST
        assert "Validation Failed" in result.message

    def test_other_status_is_generic(self, classifier):
        result = classifier.classify(_status_error(500, {"message": "Server Error"}))

        assert result.kind == ErrorKind.GENERIC_UPSTREAM_ERROR
        assert "500" in result.message
        assert "Server Error" in result.message


class TestConnectionFailures:
    """Test classification of transport failures."""

    def test_refused_on_inference_port(self, classifier):
        failure = ConnectionRefusedFailure("Connection refused", host="localhost", port=11434)

        result = classifier.classify(failure)

        assert result.kind == ErrorKind.INFERENCE_SERVICE_DOWN
        assert "ollama serve" in result.suggestion

    def test_refused_on_server_port(self, classifier):
        failure = ConnectionRefusedFailure("Connection refused", host="127.0.0.1", port=5000)

        result = classifier.classify(failure)

        assert result.kind == ErrorKind.ORCHESTRATION_SERVER_DOWN

    def test_refused_from_raw_httpx_error(self, classifier):
        request = httpx.Request("GET", "http://localhost:11434/api/tags")
        error = httpx.ConnectError("All connection attempts failed", request=request)

        result = classifier.classify(error)

        assert result.kind == ErrorKind.INFERENCE_SERVICE_DOWN

    def test_refused_on_other_port_is_unknown(self, classifier):
        failure = ConnectionRefusedFailure("Connection refused", host="localhost", port=6379)

        result = classifier.classify(failure)

        assert result.kind == ErrorKind.UNKNOWN_ERROR

    def test_refused_on_remote_host_is_unknown(self, classifier):
        failure = ConnectionRefusedFailure("Connection refused", host="example.com", port=11434)

        result = classifier.classify(failure)

        assert result.kind == ErrorKind.UNKNOWN_ERROR

    def test_dns_failure_is_network_error(self, classifier):
        request = httpx.Request("GET", "https://api.github.com/user")
        error = httpx.ConnectError("[Errno -2] Name or service not known", request=request)

        result = classifier.classify(error)

        assert result.kind == ErrorKind.NETWORK_ERROR

    def test_network_failure(self, classifier):
        result = classifier.classify(NetworkFailure("Connection reset by peer"))

        assert result.kind == ErrorKind.NETWORK_ERROR

    def test_timeout_is_network_error(self, classifier):
        result = classifier.classify(TimeoutFailure("read timed out"))

        assert result.kind == ErrorKind.NETWORK_ERROR
        assert result.message == "Request timed out."

    def test_timeout_word_in_message(self, classifier):
        result = classifier.classify(UnexpectedFailure("operation timeout while waiting"))

        assert result.kind == ErrorKind.NETWORK_ERROR


class TestUnknownFailures:

    def test_unknown_keeps_raw_message(self, classifier):
        result = classifier.classify(ValueError("something odd"))

        assert result.kind == ErrorKind.UNKNOWN_ERROR
        assert result.message == "something odd"

    def test_classification_is_deterministic(self, classifier):
        failure = UpstreamStatusFailure(404, "Not Found")

        assert classifier.classify(failure) == classifier.classify(failure)

    def test_every_kind_has_a_suggestion(self):
        assert set(SUGGESTIONS) == set(ErrorKind)
        assert all(SUGGESTIONS.values())


def test_format_for_cli(classifier):
    result = classifier.classify(UpstreamStatusFailure(401, "Bad credentials"))

    text = format_for_cli(result)

    assert text == f"❌ {result.message}\n💡 {result.suggestion}"


def test_format_for_api(classifier):
    result = classifier.classify(ConnectionRefusedFailure("refused", host="localhost", port=11434))

    body = format_for_api(result)

    assert body == {
        "error": result.message,
        "type": "inference-service-down",
        "suggestion": result.suggestion,
    }


def test_timed_out_wording_is_network_error(classifier):
    result = classifier.classify(UnexpectedFailure("Read timed out"))

    assert result.kind == ErrorKind.NETWORK_ERROR
