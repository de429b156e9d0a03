"""
Review endpoints: inference status, PR analysis and review publishing.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from pr_reviewer.api.dependencies import get_github_client, get_pipeline
from pr_reviewer.models.api_response import AnalyzeRequest, PostReviewRequest
from pr_reviewer.services.github_client import GitHubClient
from pr_reviewer.services.review_pipeline import ReviewPipeline
from pr_reviewer.services.review_publisher import ReviewPublisher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reviews"])


@router.get("/ollama/status")
async def ollama_status(pipeline: ReviewPipeline = Depends(get_pipeline)) -> dict:
    """Report whether Ollama is running and has the configured model."""
    status = await pipeline.prober.probe()
    return status.model_dump(by_alias=True)


@router.post("/analyze-pr")
async def analyze_pull_request(
    request: AnalyzeRequest,
    github: GitHubClient = Depends(get_github_client),
    pipeline: ReviewPipeline = Depends(get_pipeline),
) -> dict:
    """
    Generate an AI review for a pull request.

    Raises:
        HTTPException: 400 if owner, repo or prNumber is missing
        Failure: If GitHub calls fail
        ModelGateError: If Ollama is down or lacks the model
        GenerationError: If both generation paths fail
    """
    if not request.owner or not request.repo or not request.pr_number:
        raise HTTPException(status_code=400, detail="Missing required parameters: owner, repo, prNumber")

    logger.info(f"Analyzing PR {request.owner}/{request.repo}#{request.pr_number}")
    analysis = await pipeline.analyze(github, request.owner, request.repo, request.pr_number)
    return {"success": True, "analysis": analysis.model_dump(by_alias=True)}


@router.post("/post-review")
async def post_review(
    request: PostReviewRequest,
    github: GitHubClient = Depends(get_github_client),
    pipeline: ReviewPipeline = Depends(get_pipeline),
) -> dict:
    """Publish a review as a comment on the pull request."""
    review = request.review_text
    if not request.owner or not request.repo or not request.pr_number or not review:
        raise HTTPException(status_code=400, detail="Missing required parameters")

    publisher = ReviewPublisher(github, model=pipeline.generator.model)
    comment = await publisher.publish(request.owner, request.repo, request.pr_number, review)
    return {"success": True, "comment": comment.model_dump()}
