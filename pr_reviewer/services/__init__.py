"""
Services for the PR reviewer.
"""

from pr_reviewer.services.error_classifier import (
    ErrorClassifier,
    classify,
    format_for_api,
    format_for_cli,
    get_error_classifier,
)
from pr_reviewer.services.github_client import GitHubClient
from pr_reviewer.services.github_oauth import GitHubOAuth
from pr_reviewer.services.model_prober import ModelProber
from pr_reviewer.services.prompt_builder import ReviewPromptBuilder
from pr_reviewer.services.review_generator import ReviewGenerator
from pr_reviewer.services.review_pipeline import (
    GenerationError,
    ModelGateError,
    ReviewPipeline,
    create_review_pipeline,
)
from pr_reviewer.services.review_publisher import ReviewPublisher, format_review_comment
from pr_reviewer.services.session_store import (
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
    SessionStoreError,
    create_session_store,
)

__all__ = [
    "ErrorClassifier",
    "classify",
    "format_for_api",
    "format_for_cli",
    "get_error_classifier",
    "GitHubClient",
    "GitHubOAuth",
    "ModelProber",
    "ReviewPromptBuilder",
    "ReviewGenerator",
    "GenerationError",
    "ModelGateError",
    "ReviewPipeline",
    "create_review_pipeline",
    "ReviewPublisher",
    "format_review_comment",
    "InMemorySessionStore",
    "RedisSessionStore",
    "SessionStore",
    "SessionStoreError",
    "create_session_store",
]
