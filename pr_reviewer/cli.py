"""CLI entry point for pr-reviewer.

Commands:
  serve     run the reviewer API server
  login     sign in with GitHub through the server
  status    show whether Ollama is running and has the model
  repos     list your recently updated repositories
  review    generate an AI review for a pull request and optionally post it
"""

from typing import Any, Dict, Optional

import click
import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from pr_reviewer import __version__
from pr_reviewer.config import settings
from pr_reviewer.failures import UpstreamStatusFailure
from pr_reviewer.services.error_classifier import ErrorClassifier, classify, format_for_cli

# PR_REVIEWER_SERVER and PR_REVIEWER_SESSION may live in .env
load_dotenv()

console = Console()

DEFAULT_TIMEOUT = 30.0
# Covers the structured attempt plus the CLI fallback on the server
REVIEW_TIMEOUT = 600.0
REPOS_SHOWN = 10


class ReviewerError(click.ClickException):
    """A failure to show the user, already rendered with its suggestion."""

    def show(self, file=None) -> None:
        console.print(self.message, style="red", markup=False)


def render_error_body(status_code: int, data: Dict[str, Any], text: str) -> str:
    """Render an error response from the server for the terminal."""
    if data.get("error"):
        message = f"❌ {data['error']}"
        if data.get("suggestion"):
            message += f"\n💡 {data['suggestion']}"
        if data.get("availableModels"):
            message += f"\n   Available models: {', '.join(data['availableModels'])}"
        return message
    if data.get("detail"):
        return f"❌ {data['detail']}"
    return format_for_cli(classify(UpstreamStatusFailure(status_code, text)))


def server_port(base_url: str) -> int:
    """Port of the reviewer server, defaulting by scheme."""
    url = httpx.URL(base_url)
    if url.port:
        return url.port
    return 443 if url.scheme == "https" else 80


class ReviewerAPI:
    """Synchronous client for the reviewer server."""

    def __init__(self, base_url: str, token: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._transport = transport
        # A refused connection on this server's port means the server is down
        self.classifier = ErrorClassifier(
            inference_port=settings.ollama_port,
            server_port=server_port(self.base_url),
        )

    def request(self, method: str, path: str, timeout: float = DEFAULT_TIMEOUT, **kwargs: Any) -> Dict[str, Any]:
        """
        Call the server and return its JSON body.

        Raises:
            ReviewerError: On transport failures or error responses
        """
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            with httpx.Client(base_url=self.base_url, timeout=timeout, transport=self._transport) as client:
                response = client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise ReviewerError(format_for_cli(self.classifier.classify(e))) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"items": data}

        if response.is_error:
            raise ReviewerError(render_error_body(response.status_code, data, response.text))
        return data


def _api(ctx: click.Context, require_token: bool = True) -> ReviewerAPI:
    api: ReviewerAPI = ctx.obj["api"]
    if require_token and not api.token:
        raise click.UsageError(
            "Not signed in. Run `pr-reviewer login`, then set PR_REVIEWER_SESSION "
            "to the sessionToken shown after authorizing."
        )
    return api


@click.group()
@click.version_option(version=__version__, prog_name="pr-reviewer")
@click.option(
    "--server",
    default=settings.server_url,
    show_default=True,
    envvar="PR_REVIEWER_SERVER",
    help="Base URL of the reviewer server.",
)
@click.option(
    "--token",
    default=None,
    envvar="PR_REVIEWER_SESSION",
    help="Session token returned by the GitHub login.",
)
@click.pass_context
def main(ctx: click.Context, server: str, token: Optional[str]):
    """AI GitHub PR reviewer backed by a local Ollama model."""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("api", ReviewerAPI(server, token))


@main.command("serve")
@click.option("--host", default=settings.host, show_default=True, help="Interface to bind.")
@click.option("--port", default=settings.port, show_default=True, type=int, help="Port to listen on.")
def serve_cmd(host: str, port: int):
    """Run the reviewer API server."""
    import uvicorn

    uvicorn.run("pr_reviewer.main:app", host=host, port=port)


@main.command("login")
@click.pass_context
def login_cmd(ctx: click.Context):
    """Open the GitHub sign-in page in the browser."""
    api = _api(ctx, require_token=False)
    url = f"{api.base_url}/auth/login"
    console.print(f"Opening [bold]{url}[/bold]")
    console.print("After authorizing, export the sessionToken as PR_REVIEWER_SESSION.")
    click.launch(url)


@main.command("status")
@click.pass_context
def status_cmd(ctx: click.Context):
    """Show whether Ollama is running and has the configured model."""
    status = _api(ctx, require_token=False).request("GET", "/api/ollama/status")

    if not status.get("running"):
        console.print("[red]❌ Ollama is not running[/red]")
        console.print("💡 Run: ollama serve")
        if status.get("error"):
            console.print(f"   {status['error']}", markup=False)
        return

    console.print("[green]✅ Ollama is running[/green]")
    if status.get("modelAvailable"):
        console.print(f"[green]✅ Model {settings.ollama_model} is available[/green]")
    else:
        console.print(f"[yellow]⚠️  Model {settings.ollama_model} is not installed[/yellow]")
        console.print(f"💡 Run: ollama pull {settings.ollama_model}")
    models = status.get("availableModels") or []
    if models:
        console.print(f"Installed models: {', '.join(models)}")


@main.command("repos")
@click.pass_context
def repos_cmd(ctx: click.Context):
    """List your most recently updated repositories."""
    repos = _api(ctx).request("GET", "/api/repos").get("repos") or []
    if not repos:
        console.print("[yellow]No repositories found.[/yellow]")
        return

    console.print(f"\nFound {len(repos)} repositories:")
    for repo in repos[:REPOS_SHOWN]:
        language = f" ({repo['language']})" if repo.get("language") else ""
        console.print(f"  [bold]{repo['full_name']}[/bold]{language}")
    if len(repos) > REPOS_SHOWN:
        console.print(f"  ... and {len(repos) - REPOS_SHOWN} more")


@main.command("review")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option(
    "--pr",
    "pr_number",
    type=int,
    default=None,
    help="Pull request number. Omit to list open PRs interactively.",
)
@click.option(
    "--post/--no-post",
    default=None,
    help="Post the review as a PR comment. Asks when neither flag is given.",
)
@click.pass_context
def review_cmd(ctx: click.Context, repo: str, pr_number: Optional[int], post: Optional[bool]):
    """Generate an AI review for a pull request.

    Fetches the pull request diff through the server, reviews it with the
    local Ollama model and prints the result. The review is posted as a PR
    comment only after confirmation.
    """
    if repo.count("/") != 1 or not all(repo.split("/")):
        raise click.BadParameter("expected owner/name", param_hint="--repo")
    owner, name = repo.split("/")
    api = _api(ctx)

    if pr_number is None:
        pulls = api.request("GET", f"/api/repos/{owner}/{name}/pulls").get("pulls") or []
        if not pulls:
            console.print("[yellow]No open pull requests found.[/yellow]")
            return
        console.print("\nOpen pull requests:")
        for pr in pulls:
            console.print(f"  [bold]#{pr['number']}[/bold]  {pr['title']}", highlight=False)
        pr_number = click.prompt("\nEnter the pull request number", type=int)

    body = {"owner": owner, "repo": name, "prNumber": pr_number}
    with console.status(f"Reviewing {repo}#{pr_number}..."):
        analysis = api.request("POST", "/api/analyze-pr", json=body, timeout=REVIEW_TIMEOUT)["analysis"]

    pr = analysis["pr"]
    console.print(f"\n[bold]{pr['title']}[/bold] by {pr['author']} ({pr['filesChanged']} files changed)")
    console.print(Panel(Markdown(analysis["review"]), title=f"{analysis['model']} via {analysis['method']}"))

    if post is None:
        post = click.confirm("Post this review as a comment on the pull request?", default=False)
    if not post:
        return

    comment = api.request("POST", "/api/post-review", json={**body, "review": analysis["review"]})["comment"]
    console.print(f"[green]✅ Review posted:[/green] {comment.get('url') or comment['id']}")
