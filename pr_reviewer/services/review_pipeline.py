"""
Review pipeline.

Turns a pull request identifier into a generated review:
    fetch PR + diff → probe Ollama (gate) → build prompt → generate

Publishing is left to the caller.
"""

from typing import List, Optional

import httpx

from pr_reviewer.config import settings
from pr_reviewer.models.api_response import AnalyzedPullRequest, PullRequestAnalysis
from pr_reviewer.models.error import ErrorKind
from pr_reviewer.models.review import PullRequestContext
from pr_reviewer.services.github_client import GitHubClient
from pr_reviewer.services.model_prober import ModelProber
from pr_reviewer.services.prompt_builder import ReviewPromptBuilder
from pr_reviewer.services.review_generator import ReviewGenerator
from pr_reviewer.utils.logging import get_logger
from pr_reviewer.utils.resilience import create_inference_circuit_breaker

logger = get_logger(__name__)


class ModelGateError(Exception):
    """The inference service is down or lacks the configured model."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        suggestion: str,
        available_models: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.suggestion = suggestion
        self.available_models = available_models


class GenerationError(Exception):
    """Both generation paths failed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ReviewPipeline:
    """Runs one review per call; holds no per-request state."""

    def __init__(self, prober: ModelProber, generator: ReviewGenerator):
        self.prober = prober
        self.generator = generator

    async def check_model(self) -> None:
        """
        Gate generation on the inference service.

        Raises:
            ModelGateError: If Ollama is not running or the model is missing
        """
        status = await self.prober.probe()
        if not status.running:
            raise ModelGateError(
                "Ollama is not running. Please start Ollama service.",
                kind=ErrorKind.INFERENCE_SERVICE_DOWN,
                suggestion="Run: ollama serve",
            )
        if not status.model_available:
            model = self.prober.model
            raise ModelGateError(
                f"Model {model} is not available.",
                kind=ErrorKind.RESOURCE_NOT_FOUND,
                suggestion=f"Run: ollama pull {model}",
                available_models=status.available_models,
            )

    async def analyze(self, github: GitHubClient, owner: str, repo: str, pr_number: int) -> PullRequestAnalysis:
        """
        Generate a review for a pull request.

        Raises:
            Failure: If GitHub calls fail
            ModelGateError: If the model gate rejects the run
            GenerationError: If both generation paths fail
        """
        log = logger.with_context(repo=f"{owner}/{repo}", pr_number=pr_number)

        pr_data = await github.get_pull_request(owner, repo, pr_number)
        pull_diff = await github.fetch_diff(owner, repo, pr_number)
        log.info(f"Fetched diff: {len(pull_diff.diff)} chars, {len(pull_diff.files)} files")

        await self.check_model()

        author = (pr_data.get("user") or {}).get("login", "")
        context = PullRequestContext(
            title=pr_data.get("title") or "",
            description=pr_data.get("body") or "",
            author=author,
        )

        result = await self.generator.generate(pull_diff.diff, context)
        if not result.success:
            log.error(f"Review generation failed: {result.error}")
            raise GenerationError(result.error or "Unknown generation error")

        log.info("Review generated", extra={"method": result.method.value})
        return PullRequestAnalysis(
            pr=AnalyzedPullRequest(
                title=context.title,
                author=author,
                url=pr_data.get("html_url"),
                files_changed=len(pull_diff.files),
            ),
            review=result.review,
            model=result.model,
            method=result.method,
        )


def create_review_pipeline(http_client: Optional[httpx.AsyncClient] = None) -> ReviewPipeline:
    """Build a pipeline from application settings."""
    circuit_breaker = None
    if settings.api_circuit_breaker_enabled:
        circuit_breaker = create_inference_circuit_breaker(
            failure_threshold=settings.api_circuit_failure_threshold,
            timeout=settings.api_circuit_timeout_seconds,
        )

    prober = ModelProber(
        base_url=settings.ollama_base_url,
        model=settings.ollama_model,
        timeout=settings.probe_timeout_seconds,
        http_client=http_client,
    )
    generator = ReviewGenerator(
        base_url=settings.ollama_base_url,
        model=settings.ollama_model,
        prompt_builder=ReviewPromptBuilder(
            max_diff_chars=settings.max_diff_chars,
            max_title_chars=settings.max_title_chars,
            max_description_chars=settings.max_description_chars,
        ),
        binary=settings.ollama_binary,
        api_timeout=settings.generate_timeout_seconds,
        cli_timeout=settings.cli_timeout_seconds,
        cli_max_buffer=settings.cli_max_buffer_bytes,
        http_client=http_client,
        circuit_breaker=circuit_breaker,
    )
    return ReviewPipeline(prober, generator)
