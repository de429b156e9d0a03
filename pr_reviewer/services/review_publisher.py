"""
Review Publisher component.

Posts a generated review to the pull request conversation as an issue
comment, wrapped with an attribution header and footer.
"""

from pr_reviewer.models.github import PostedComment
from pr_reviewer.services.github_client import GitHubClient
from pr_reviewer.utils.logging import get_logger

logger = get_logger(__name__)

REVIEW_COMMENT_TEMPLATE = """🤖 **AI Code Review** (Generated by AI GitHub PR Reviewer)

{review}

---
*This review was generated using local AI ({model}). Please use your judgment and verify suggestions.*"""


def format_review_comment(review: str, model: str) -> str:
    """Wrap review text with the attribution header and footer."""
    return REVIEW_COMMENT_TEMPLATE.format(review=review, model=model)


class ReviewPublisher:
    """Publishes review text to GitHub pull requests."""

    def __init__(self, github_client: GitHubClient, model: str):
        self._github = github_client
        self.model = model

    async def publish(self, owner: str, repo: str, pr_number: int, review: str) -> PostedComment:
        """
        Post the formatted review as a comment.

        Raises:
            Failure: If GitHub rejects the comment or is unreachable
        """
        body = format_review_comment(review, self.model)
        comment = await self._github.post_issue_comment(owner, repo, pr_number, body)
        logger.info(
            f"Review comment {comment.id} posted",
            extra={"repo": f"{owner}/{repo}", "pr_number": pr_number},
        )
        return comment
