"""Classified error data models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    """Closed set of user-facing failure kinds."""

    AUTH_FAILURE = "auth-failure"
    RATE_LIMIT = "rate-limit"
    RESOURCE_NOT_FOUND = "resource-not-found"
    INVALID_REQUEST = "invalid-request"
    GENERIC_UPSTREAM_ERROR = "generic-upstream-error"
    INFERENCE_SERVICE_DOWN = "inference-service-down"
    ORCHESTRATION_SERVER_DOWN = "orchestration-server-down"
    NETWORK_ERROR = "network-error"
    UNKNOWN_ERROR = "unknown-error"


class ClassifiedError(BaseModel):
    """A failure mapped to a kind plus one remediation hint."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    suggestion: str


class ErrorResponse(BaseModel):
    """JSON error body returned by the API."""

    error: str
    type: str
    suggestion: str
