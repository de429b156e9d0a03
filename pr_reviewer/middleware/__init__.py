"""
HTTP middleware for the PR reviewer API.
"""

from pr_reviewer.middleware.logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]
