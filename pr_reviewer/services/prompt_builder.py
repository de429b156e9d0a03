"""
Review Prompt Builder component.

Renders a pull request diff and its metadata into the instruction prompt sent
to the model. Rendering is pure: the same inputs always give the same text.
"""

from pr_reviewer.models.review import PullRequestContext

DEFAULT_MAX_DIFF_CHARS = 8000
DEFAULT_MAX_TITLE_CHARS = 256
DEFAULT_MAX_DESCRIPTION_CHARS = 2000
TRUNCATION_MARKER = "\n... (truncated)"

REVIEW_TEMPLATE = """You are a senior software engineer conducting a code review. Analyze this GitHub Pull Request and provide a comprehensive review.

**Pull Request Context:**
- Title: {title}
- Author: {author}
- Description: {description}

**Code Changes:**
```diff
{diff}
```

**Review Guidelines:**
1. Identify potential bugs, security issues, or performance problems
2. Check for code quality and best practices
3. Look for proper error handling and edge cases
4. Evaluate code readability and maintainability
5. Suggest improvements or optimizations

**Please provide your review in the following format:**

## 🔍 Code Review Summary

### ✅ Positive Aspects
- [List what's done well]

### ⚠️ Issues Found
- [List any problems, bugs, or concerns]

### 💡 Suggestions
- [List improvements and recommendations]

### 🎯 Overall Assessment
[Brief overall evaluation and recommendation]

Keep your review constructive, specific, and actionable. Focus on the most important issues first."""


class ReviewPromptBuilder:
    """Builds bounded-size review prompts."""

    def __init__(
        self,
        max_diff_chars: int = DEFAULT_MAX_DIFF_CHARS,
        max_title_chars: int = DEFAULT_MAX_TITLE_CHARS,
        max_description_chars: int = DEFAULT_MAX_DESCRIPTION_CHARS,
    ):
        self.max_diff_chars = max_diff_chars
        self.max_title_chars = max_title_chars
        self.max_description_chars = max_description_chars

    def truncate_diff(self, diff: str) -> str:
        """
        Cut the diff to the character budget.

        Diffs at or above the budget keep exactly ``max_diff_chars`` characters
        followed by the truncation marker, so the cut may land mid-line.
        """
        if len(diff) >= self.max_diff_chars:
            return diff[:self.max_diff_chars] + TRUNCATION_MARKER
        return diff

    @staticmethod
    def truncate_field(value: str, limit: int) -> str:
        """Cut a metadata field longer than ``limit``; shorter values are kept verbatim."""
        if len(value) > limit:
            return value[:limit] + TRUNCATION_MARKER
        return value

    def build(self, diff: str, context: PullRequestContext) -> str:
        """
        Render the review prompt.

        Args:
            diff: Unified diff text, possibly empty
            context: Pull request title, author and description

        Returns:
            Prompt text
        """
        return REVIEW_TEMPLATE.format(
            title=self.truncate_field(context.title, self.max_title_chars),
            author=self.truncate_field(context.author, self.max_title_chars),
            description=self.truncate_field(context.description, self.max_description_chars),
            diff=self.truncate_diff(diff or ""),
        )
