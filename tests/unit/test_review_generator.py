"""
Unit tests for the two-tier review generator.

CLI fallback tests run small shell scripts in place of the ``ollama`` binary.
"""

import asyncio
import json
import stat
from pathlib import Path

import httpx
import pytest

from pr_reviewer.models.review import PullRequestContext, ReviewMethod
from pr_reviewer.services.review_generator import (
    GENERATION_OPTIONS,
    ReviewGenerator,
    escape_for_shell,
)
from pr_reviewer.utils.resilience import CircuitBreaker, CircuitState

CONTEXT = PullRequestContext(title="Add cache", description="Caches lookups", author="octocat")
DIFF = "+ cache = {}\n"


@pytest.fixture
def fake_ollama(tmp_path: Path):
    """Write an executable script standing in for the ollama binary."""
    def _write(body: str) -> str:
        script = tmp_path / "ollama"
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(script.stat().st_mode | stat.S_IEXEC)
        return str(script)
    return _write


def _generator(handler=None, binary: str = "ollama", **kwargs) -> ReviewGenerator:
    if handler is None:
        handler = lambda request: httpx.Response(500, json={"error": "model crashed"})
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ReviewGenerator(
        "http://localhost:11434",
        "gemma:2b",
        binary=binary,
        http_client=client,
        **kwargs,
    )


class TestApiGeneration:
    """Test the structured API path."""

    @pytest.mark.asyncio
    async def test_api_success(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "  Looks good overall.  "})

        result = await _generator(handler).generate(DIFF, CONTEXT)

        assert result.success is True
        assert result.review == "Looks good overall."
        assert result.method == ReviewMethod.API
        assert result.model == "gemma:2b"
        assert captured["path"] == "/api/generate"
        assert captured["body"]["model"] == "gemma:2b"
        assert captured["body"]["stream"] is False
        assert captured["body"]["options"] == GENERATION_OPTIONS
        assert "+ cache = {}" in captured["body"]["prompt"]

    @pytest.mark.asyncio
    async def test_api_error_falls_back_to_cli(self, fake_ollama):
        generator = _generator(binary=fake_ollama('echo "LGTM"'))

        result = await generator.generate(DIFF, CONTEXT)

        assert result.success is True
        assert result.review == "LGTM"
        assert result.method == ReviewMethod.CLI

    @pytest.mark.asyncio
    async def test_empty_api_response_falls_back_to_cli(self, fake_ollama):
        generator = _generator(
            lambda request: httpx.Response(200, json={"response": "   "}),
            binary=fake_ollama('echo "from cli"'),
        )

        result = await generator.generate(DIFF, CONTEXT)

        assert result.method == ReviewMethod.CLI
        assert result.review == "from cli"

    @pytest.mark.asyncio
    async def test_connection_refused_falls_back_to_cli(self, fake_ollama):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("All connection attempts failed", request=request)

        result = await _generator(handler, binary=fake_ollama('echo "LGTM"')).generate(DIFF, CONTEXT)

        assert result.method == ReviewMethod.CLI

    @pytest.mark.asyncio
    async def test_long_description_still_reaches_cli(self, fake_ollama):
        """Test a PR body at GitHub's size limit does not overflow the CLI argument."""
        context = PullRequestContext(title="Big body", description="漢" * 60000, author="octocat")
        generator = _generator(binary=fake_ollama('echo "LGTM"'))

        result = await generator.generate(DIFF, context)

        assert result.success is True
        assert result.review == "LGTM"
        assert result.method == ReviewMethod.CLI

    @pytest.mark.asyncio
    async def test_both_paths_fail(self, fake_ollama):
        generator = _generator(binary=fake_ollama('echo "model not found" >&2\nexit 1'))

        result = await generator.generate(DIFF, CONTEXT)

        assert result.success is False
        assert result.review is None
        assert result.error == "model not found"

    @pytest.mark.asyncio
    async def test_open_circuit_skips_api(self, fake_ollama):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"response": "api review"})

        breaker = CircuitBreaker(failure_threshold=1, timeout=60)
        breaker.state = CircuitState.OPEN
        breaker.last_failure_time = breaker._clock()
        generator = _generator(handler, binary=fake_ollama('echo "LGTM"'), circuit_breaker=breaker)

        result = await generator.generate(DIFF, CONTEXT)

        assert calls == []
        assert result.method == ReviewMethod.CLI


class TestCliGeneration:
    """Test the CLI fallback path."""

    def test_escape_for_shell(self):
        assert escape_for_shell('say "hi" to $USER `now` \\n') == 'say \\"hi\\" to \\$USER \\`now\\` \\\\n'

    def test_cli_command_shape(self):
        generator = _generator(binary="ollama")

        assert generator.build_cli_command('a "b"') == 'ollama run gemma:2b "a \\"b\\""'

    @pytest.mark.asyncio
    async def test_prompt_reaches_cli_verbatim(self, fake_ollama):
        """Test shell metacharacters in the prompt arrive unchanged."""
        context = PullRequestContext(
            title='Use "$HOME" and `whoami`',
            description="back\\slash and $(echo injected)",
            author="octo$cat",
        )
        diff = '+ echo "$PATH" `id` \\\n'
        generator = _generator(binary=fake_ollama('printf "%s" "$3"'))

        result = await generator.generate_via_cli(diff, context)

        assert result.success is True
        assert result.review == generator.prompt_builder.build(diff, context).strip()

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_failure(self, fake_ollama):
        generator = _generator(binary=fake_ollama('echo "partial"\nexit 3'))

        result = await generator.generate_via_cli(DIFF, CONTEXT)

        assert result.success is False
        assert "status 3" in result.error

    @pytest.mark.asyncio
    async def test_stderr_only_is_failure(self, fake_ollama):
        generator = _generator(binary=fake_ollama('echo "pulling manifest" >&2'))

        result = await generator.generate_via_cli(DIFF, CONTEXT)

        assert result.success is False
        assert result.error == "pulling manifest"

    @pytest.mark.asyncio
    async def test_no_output_is_failure(self, fake_ollama):
        generator = _generator(binary=fake_ollama("true"))

        result = await generator.generate_via_cli(DIFF, CONTEXT)

        assert result.success is False
        assert result.error == "No output from Ollama CLI"

    @pytest.mark.asyncio
    async def test_output_ceiling(self, fake_ollama):
        script = 'i=0\nwhile [ $i -lt 50 ]; do echo "0123456789"; i=$((i+1)); done'
        generator = _generator(binary=fake_ollama(script), cli_max_buffer=100)

        result = await generator.generate_via_cli(DIFF, CONTEXT)

        assert result.success is False
        assert "exceeded" in result.error

    @pytest.mark.asyncio
    async def test_output_ceiling_reaps_both_readers(self, fake_ollama):
        """Test the quiet stream's reader is collected when the other overflows."""
        script = 'i=0\nwhile [ $i -lt 50 ]; do echo "0123456789"; i=$((i+1)); done\nsleep 5'
        generator = _generator(binary=fake_ollama(script), cli_max_buffer=100, cli_timeout=10)

        result = await generator.generate_via_cli(DIFF, CONTEXT)

        assert "exceeded" in result.error
        assert asyncio.all_tasks() == {asyncio.current_task()}

    @pytest.mark.asyncio
    async def test_timeout(self, fake_ollama):
        generator = _generator(binary=fake_ollama("sleep 5"), cli_timeout=0.5)

        result = await generator.generate_via_cli(DIFF, CONTEXT)

        assert result.success is False
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_missing_binary(self, tmp_path):
        generator = _generator(binary=str(tmp_path / "missing-ollama"))

        result = await generator.generate_via_cli(DIFF, CONTEXT)

        assert result.success is False
        assert result.error
