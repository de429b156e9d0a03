"""
Error Classifier component.

Maps any failure (a boundary Failure or a raw exception) to one of a fixed
set of error kinds with a single remediation hint, and renders the result
for the terminal client or for an API response body.
"""

from typing import Dict, Optional

from pr_reviewer.config import settings
from pr_reviewer.failures import (
    ConnectionRefusedFailure,
    Failure,
    NetworkFailure,
    TimeoutFailure,
    UpstreamStatusFailure,
    failure_from_exception,
)
from pr_reviewer.models.error import ClassifiedError, ErrorKind

SUGGESTIONS: Dict[ErrorKind, str] = {
    ErrorKind.AUTH_FAILURE: "Sign in again via /auth/login to refresh your GitHub session",
    ErrorKind.RATE_LIMIT: "Wait for the rate limit to reset, or use a personal access token",
    ErrorKind.RESOURCE_NOT_FOUND: "Verify the repository name and pull request number exist and that you have access",
    ErrorKind.INVALID_REQUEST: "Check the repository name and request parameters",
    ErrorKind.GENERIC_UPSTREAM_ERROR: "Check https://www.githubstatus.com and try again",
    ErrorKind.INFERENCE_SERVICE_DOWN: "Start the local inference service with: ollama serve",
    ErrorKind.ORCHESTRATION_SERVER_DOWN: "Start the reviewer server with: pr-reviewer serve",
    ErrorKind.NETWORK_ERROR: "Check your internet connection and try again",
    ErrorKind.UNKNOWN_ERROR: "Check the server logs for more details",
}


class ErrorClassifier:
    """Classifies failures against the inference and server ports it is given."""

    def __init__(self, inference_port: int, server_port: int):
        self.inference_port = inference_port
        self.server_port = server_port

    def classify(self, error: BaseException) -> ClassifiedError:
        """
        Classify a failure. Never raises.

        Args:
            error: A Failure, or any exception caught around an external call

        Returns:
            ClassifiedError with the kind, a short message and the kind's suggestion
        """
        failure = error if isinstance(error, Failure) else failure_from_exception(error)

        if isinstance(failure, UpstreamStatusFailure):
            return self._classify_status(failure)

        if isinstance(failure, ConnectionRefusedFailure) and failure.is_local:
            if failure.port == self.inference_port:
                return _classified(
                    ErrorKind.INFERENCE_SERVICE_DOWN,
                    "Ollama is not running.",
                )
            if failure.port == self.server_port:
                return _classified(
                    ErrorKind.ORCHESTRATION_SERVER_DOWN,
                    "The reviewer server is not running.",
                )

        if isinstance(failure, NetworkFailure):
            return _classified(
                ErrorKind.NETWORK_ERROR,
                "Network connection failed.",
            )

        message = failure.message.lower()
        if isinstance(failure, TimeoutFailure) or "timeout" in message or "timed out" in message:
            return _classified(ErrorKind.NETWORK_ERROR, "Request timed out.")

        return _classified(
            ErrorKind.UNKNOWN_ERROR,
            failure.message or "An unexpected error occurred",
        )

    def _classify_status(self, failure: UpstreamStatusFailure) -> ClassifiedError:
        status = failure.status_code
        upstream = failure.upstream_message

        if status == 401:
            return _classified(
                ErrorKind.AUTH_FAILURE,
                "Invalid or expired GitHub token. Please re-authenticate.",
            )
        if status == 403 and "rate limit" in upstream.lower():
            return _classified(ErrorKind.RATE_LIMIT, f"{upstream}. Try again later.")
        if status in (403, 404):
            return _classified(
                ErrorKind.RESOURCE_NOT_FOUND,
                "Pull request or repository not found, or access denied.",
            )
        if status == 422:
            return _classified(
                ErrorKind.INVALID_REQUEST,
                f"GitHub API error: {upstream or 'Invalid request'}",
            )
        return _classified(
            ErrorKind.GENERIC_UPSTREAM_ERROR,
            f"GitHub API error ({status}): {upstream or 'Unknown error'}",
        )


def _classified(kind: ErrorKind, message: str) -> ClassifiedError:
    return ClassifiedError(kind=kind, message=message, suggestion=SUGGESTIONS[kind])


def format_for_cli(classified: ClassifiedError) -> str:
    """Render a classified error as terminal text with a suggestion line."""
    return f"❌ {classified.message}\n💡 {classified.suggestion}"


def format_for_api(classified: ClassifiedError) -> Dict[str, str]:
    """Render a classified error as the API error body."""
    return {
        "error": classified.message,
        "type": classified.kind.value,
        "suggestion": classified.suggestion,
    }


_default_classifier: Optional[ErrorClassifier] = None


def get_error_classifier() -> ErrorClassifier:
    """Get or create the classifier configured from application settings."""
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = ErrorClassifier(
            inference_port=settings.ollama_port,
            server_port=settings.port,
        )
    return _default_classifier


def classify(error: BaseException) -> ClassifiedError:
    """Classify with the application-wide classifier."""
    return get_error_classifier().classify(error)
