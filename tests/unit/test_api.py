"""
Unit tests for the REST API endpoints.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

pytest.importorskip("fastapi")

from fastapi.testclient import TestClient

from pr_reviewer.api.dependencies import get_oauth, get_pipeline, get_session_store
from pr_reviewer.failures import UpstreamStatusFailure
from pr_reviewer.main import app
from pr_reviewer.models.api_response import AnalyzedPullRequest, PullRequestAnalysis
from pr_reviewer.models.error import ErrorKind
from pr_reviewer.models.github import PostedComment, PullRequestSummary, RepositorySummary
from pr_reviewer.models.review import ModelStatus, ReviewMethod
from pr_reviewer.models.session import Session
from pr_reviewer.services.review_pipeline import GenerationError, ModelGateError
from pr_reviewer.services.session_store import InMemorySessionStore

SESSION_ID = "session-abc"
AUTH = {"Authorization": f"Bearer {SESSION_ID}"}


@pytest.fixture
def store() -> InMemorySessionStore:
    store = InMemorySessionStore(ttl_seconds=3600)
    asyncio.run(store.save(SESSION_ID, Session(token="gho_token", user={"login": "octocat", "name": "Octo"})))
    return store


@pytest.fixture
def pipeline():
    mock = MagicMock()
    mock.prober.probe = AsyncMock(return_value=ModelStatus(running=True, model_available=True, available_models=["gemma:2b"]))
    mock.generator.model = "gemma:2b"
    mock.analyze = AsyncMock(return_value=PullRequestAnalysis(
        pr=AnalyzedPullRequest(title="Add cache", author="octocat", url="https://github.com/octo/hello/pull/7", files_changed=2),
        review="Looks good",
        model="gemma:2b",
        method=ReviewMethod.API,
    ))
    return mock


@pytest.fixture
def github():
    """Mock GitHub client handed to routes for the signed-in user."""
    mock = MagicMock()
    with patch("pr_reviewer.api.dependencies.GitHubClient", return_value=mock) as factory:
        mock.factory = factory
        yield mock


@pytest.fixture
def oauth():
    mock = MagicMock()
    mock.get_auth_url.return_value = "https://github.com/login/oauth/authorize?client_id=abc"
    mock.exchange_code_for_token = AsyncMock(return_value="gho_new")
    mock.get_user_info = AsyncMock(return_value={"login": "hubot", "name": "Hubot", "avatar_url": "https://a/1"})
    return mock


@pytest.fixture
def client(store, pipeline, oauth):
    """Create test client with in-memory dependencies."""
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_oauth] = lambda: oauth
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert "timestamp" in data


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"


class TestAuthentication:

    def test_missing_session(self, client):
        response = client.get("/api/repos")

        assert response.status_code == 401
        assert response.json() == {"detail": "Authentication required"}

    def test_unknown_session(self, client):
        response = client.get("/api/user", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    def test_session_cookie(self, client):
        client.cookies.set("session_id", SESSION_ID)

        response = client.get("/api/user")

        assert response.status_code == 200
        assert response.json()["user"]["login"] == "octocat"

    def test_login_redirects_to_github(self, client):
        response = client.get("/auth/login", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"].startswith("https://github.com/login/oauth/authorize")

    def test_callback_without_code(self, client):
        response = client.get("/auth/github/callback")

        assert response.status_code == 400

    def test_callback_creates_session(self, client, store, oauth):
        response = client.get("/auth/github/callback", params={"code": "code-1"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["user"]["login"] == "hubot"
        assert response.cookies["session_id"] == data["sessionToken"]
        session = asyncio.run(store.get(data["sessionToken"]))
        assert session.token == "gho_new"
        oauth.exchange_code_for_token.assert_awaited_once_with("code-1")

    def test_callback_with_rejected_code(self, client, oauth):
        oauth.exchange_code_for_token.side_effect = UpstreamStatusFailure(401, "bad_verification_code")

        response = client.get("/auth/github/callback", params={"code": "stale"})

        assert response.status_code == 401
        assert response.json()["type"] == "auth-failure"

    def test_logout(self, client, store):
        response = client.post("/logout", headers=AUTH)

        assert response.status_code == 200
        assert asyncio.run(store.get(SESSION_ID)) is None


class TestGitHubRoutes:

    def test_list_repositories(self, client, github):
        github.get_user_repos = AsyncMock(return_value=[
            RepositorySummary(id=1, name="hello", full_name="octo/hello", owner="octo"),
        ])

        response = client.get("/api/repos", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["repos"][0]["full_name"] == "octo/hello"
        github.factory.assert_called_once_with("gho_token")

    def test_list_pull_requests(self, client, github):
        github.get_pull_requests = AsyncMock(return_value=[
            PullRequestSummary(id=10, number=7, title="Add cache", state="open", user="octocat"),
        ])

        response = client.get("/api/repos/octo/hello/pulls", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["pulls"][0]["number"] == 7
        github.get_pull_requests.assert_awaited_once_with("octo", "hello")

    def test_github_failure_is_classified(self, client, github):
        github.get_user_repos = AsyncMock(side_effect=UpstreamStatusFailure(403, "API rate limit exceeded"))

        response = client.get("/api/repos", headers=AUTH)

        assert response.status_code == 429
        data = response.json()
        assert data["type"] == ErrorKind.RATE_LIMIT.value
        assert data["suggestion"]


class TestReviewRoutes:

    def test_ollama_status(self, client):
        response = client.get("/api/ollama/status")

        assert response.status_code == 200
        assert response.json() == {
            "running": True,
            "modelAvailable": True,
            "availableModels": ["gemma:2b"],
            "error": None,
        }

    def test_analyze_requires_parameters(self, client, github):
        response = client.post("/api/analyze-pr", json={"owner": "octo"}, headers=AUTH)

        assert response.status_code == 400

    def test_analyze_success(self, client, github, pipeline):
        response = client.post(
            "/api/analyze-pr",
            json={"owner": "octo", "repo": "hello", "prNumber": 7},
            headers=AUTH,
        )

        assert response.status_code == 200
        analysis = response.json()["analysis"]
        assert analysis["review"] == "Looks good"
        assert analysis["method"] == "API"
        assert analysis["pr"]["filesChanged"] == 2
        pipeline.analyze.assert_awaited_once_with(github, "octo", "hello", 7)

    def test_analyze_not_found(self, client, github, pipeline):
        pipeline.analyze.side_effect = UpstreamStatusFailure(404, "Not Found")

        response = client.post("/api/analyze-pr", json={"owner": "octo", "repo": "hello", "prNumber": 999}, headers=AUTH)

        assert response.status_code == 404
        assert response.json()["type"] == "resource-not-found"

    def test_analyze_model_missing(self, client, github, pipeline):
        pipeline.analyze.side_effect = ModelGateError(
            "Model gemma:2b is not available.",
            kind=ErrorKind.RESOURCE_NOT_FOUND,
            suggestion="Run: ollama pull gemma:2b",
            available_models=["llama3:latest"],
        )

        response = client.post("/api/analyze-pr", json={"owner": "octo", "repo": "hello", "prNumber": 7}, headers=AUTH)

        assert response.status_code == 503
        data = response.json()
        assert data["suggestion"] == "Run: ollama pull gemma:2b"
        assert data["availableModels"] == ["llama3:latest"]

    def test_analyze_service_down(self, client, github, pipeline):
        pipeline.analyze.side_effect = ModelGateError(
            "Ollama is not running. Please start Ollama service.",
            kind=ErrorKind.INFERENCE_SERVICE_DOWN,
            suggestion="Run: ollama serve",
        )

        response = client.post("/api/analyze-pr", json={"owner": "octo", "repo": "hello", "prNumber": 7}, headers=AUTH)

        assert response.status_code == 503
        assert response.json()["type"] == "inference-service-down"
        assert "availableModels" not in response.json()

    def test_analyze_generation_failure(self, client, github, pipeline):
        pipeline.analyze.side_effect = GenerationError("No output from Ollama CLI")

        response = client.post("/api/analyze-pr", json={"owner": "octo", "repo": "hello", "prNumber": 7}, headers=AUTH)

        assert response.status_code == 500
        assert response.json()["error"] == "AI analysis failed: No output from Ollama CLI"

    def test_unexpected_error(self, client, github, pipeline):
        pipeline.analyze.side_effect = ValueError("bad state")

        response = client.post("/api/analyze-pr", json={"owner": "octo", "repo": "hello", "prNumber": 7}, headers=AUTH)

        assert response.status_code == 500
        assert response.json()["type"] == "unknown-error"

    def test_post_review(self, client, github):
        github.post_issue_comment = AsyncMock(return_value=PostedComment(
            id=55, url="https://github.com/octo/hello/pull/7#issuecomment-55", body="posted",
        ))

        response = client.post(
            "/api/post-review",
            json={"owner": "octo", "repo": "hello", "prNumber": 7, "review": "All good."},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json()["comment"]["id"] == 55
        posted_body = github.post_issue_comment.await_args.args[3]
        assert "All good." in posted_body
        assert "local AI (gemma:2b)" in posted_body

    def test_post_review_requires_text(self, client, github):
        response = client.post("/api/post-review", json={"owner": "octo", "repo": "hello", "prNumber": 7}, headers=AUTH)

        assert response.status_code == 400
