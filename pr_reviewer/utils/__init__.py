"""
Utility modules for the PR reviewer.
"""

from pr_reviewer.utils.logging import (
    get_logger,
    setup_logging,
    log_api_call,
    log_error_with_context,
)
from pr_reviewer.utils.resilience import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    CircuitState,
    create_inference_circuit_breaker,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "log_api_call",
    "log_error_with_context",
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    "create_inference_circuit_breaker",
]
