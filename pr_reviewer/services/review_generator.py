"""
Review Generator component.

Generates a review with a two-tier strategy:
    1. structured call to the Ollama HTTP API (``POST /api/generate``)
    2. on any failure of (1), the same model through the ``ollama run`` CLI

Both paths produce the same ReviewResult shape so callers never need to know
which one answered. Each path is attempted once; there is no internal retry.
"""

import asyncio
import os
import shlex
import signal
import time
from typing import List, Optional

import httpx

from pr_reviewer.failures import UnexpectedFailure, failure_from_exception
from pr_reviewer.models.review import PullRequestContext, ReviewMethod, ReviewResult
from pr_reviewer.services.prompt_builder import ReviewPromptBuilder
from pr_reviewer.utils.logging import get_logger, log_api_call
from pr_reviewer.utils.resilience import CircuitBreaker

logger = get_logger(__name__)

# Low-temperature sampling for consistent reviews
GENERATION_OPTIONS = {
    "temperature": 0.3,
    "top_p": 0.9,
    "max_tokens": 1000,
}

DEFAULT_CLI_MAX_BUFFER = 10 * 1024 * 1024
_READ_CHUNK = 64 * 1024

# Characters that keep their meaning inside a double-quoted shell word
_SHELL_ESCAPES = str.maketrans({
    "\\": "\\\\",
    '"': '\\"',
    "`": "\\`",
    "$": "\\$",
})


class CLIOutputLimitExceeded(Exception):
    """Raised when the CLI writes more than the output ceiling."""
    pass


def escape_for_shell(text: str) -> str:
    """Escape text for use inside a double-quoted shell argument."""
    return text.translate(_SHELL_ESCAPES)


class ReviewGenerator:
    """Generates pull request reviews from a local Ollama model."""

    def __init__(
        self,
        base_url: str,
        model: str,
        prompt_builder: Optional[ReviewPromptBuilder] = None,
        binary: str = "ollama",
        api_timeout: float = 120.0,
        cli_timeout: float = 300.0,
        cli_max_buffer: int = DEFAULT_CLI_MAX_BUFFER,
        http_client: Optional[httpx.AsyncClient] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.prompt_builder = prompt_builder or ReviewPromptBuilder()
        self.binary = binary
        self.api_timeout = api_timeout
        self.cli_timeout = cli_timeout
        self.cli_max_buffer = cli_max_buffer
        self._http_client = http_client
        self.circuit_breaker = circuit_breaker

    async def generate(self, diff: str, context: PullRequestContext) -> ReviewResult:
        """
        Generate a review for a diff. Never raises.

        Args:
            diff: Unified diff text
            context: Pull request metadata

        Returns:
            ReviewResult with method API, or the CLI fallback's result
        """
        prompt = self.prompt_builder.build(diff, context)

        try:
            if self.circuit_breaker is not None:
                review = await self.circuit_breaker.call(lambda: self._generate_via_api(prompt))
            else:
                review = await self._generate_via_api(prompt)
        except Exception as e:
            failure = failure_from_exception(e, url=f"{self.base_url}/api/generate")
            logger.warning(
                f"Ollama API generation failed, falling back to CLI: {failure.message}",
                extra={"method": ReviewMethod.CLI.value},
            )
            return await self.generate_via_cli(diff, context)

        return ReviewResult.ok(review, self.model, ReviewMethod.API)

    async def _generate_via_api(self, prompt: str) -> str:
        url = f"{self.base_url}/api/generate"
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": GENERATION_OPTIONS,
        }

        start_time = time.monotonic()
        response = await self._post(url, payload)
        response.raise_for_status()
        log_api_call(
            logger,
            service="ollama",
            endpoint="/api/generate",
            method="POST",
            status_code=response.status_code,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )

        text = response.json().get("response")
        if not isinstance(text, str) or not text.strip():
            raise UnexpectedFailure("No response from Ollama")
        return text.strip()

    async def _post(self, url: str, payload: dict) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, json=payload, timeout=self.api_timeout)
        async with httpx.AsyncClient(timeout=self.api_timeout) as client:
            return await client.post(url, json=payload)

    def build_cli_command(self, prompt: str) -> str:
        """Shell command that runs the model on the prompt."""
        return f'{shlex.quote(self.binary)} run {shlex.quote(self.model)} "{escape_for_shell(prompt)}"'

    async def generate_via_cli(self, diff: str, context: PullRequestContext) -> ReviewResult:
        """
        Generate a review through the Ollama CLI. Never raises.

        Success requires non-empty standard output. A non-zero exit, output
        only on stderr, an exceeded output ceiling or a timeout is a failure.
        """
        prompt = self.prompt_builder.build(diff, context)
        command = self.build_cli_command(prompt)
        start_time = time.monotonic()

        try:
            stdout, stderr, returncode = await self._run(command)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"Ollama CLI invocation failed: {message}", extra={"method": ReviewMethod.CLI.value})
            return ReviewResult.failed(message, model=self.model)

        duration_ms = round((time.monotonic() - start_time) * 1000, 2)
        review = stdout.strip()
        error = stderr.strip()

        if returncode != 0:
            logger.error(
                f"Ollama CLI exited with status {returncode}",
                extra={"method": ReviewMethod.CLI.value, "duration_ms": duration_ms},
            )
            return ReviewResult.failed(error or f"{self.binary} exited with status {returncode}", model=self.model)

        if not review:
            logger.error("Ollama CLI produced no output", extra={"method": ReviewMethod.CLI.value})
            return ReviewResult.failed(error or "No output from Ollama CLI", model=self.model)

        logger.info(
            "Review generated via Ollama CLI",
            extra={"method": ReviewMethod.CLI.value, "duration_ms": duration_ms},
        )
        return ReviewResult.ok(review, self.model, ReviewMethod.CLI)

    async def _run(self, command: str) -> tuple[str, str, int]:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )

        readers = [
            asyncio.create_task(self._read_capped(process.stdout)),
            asyncio.create_task(self._read_capped(process.stderr)),
        ]
        try:
            stdout, stderr = await asyncio.wait_for(asyncio.gather(*readers), timeout=self.cli_timeout)
        except asyncio.TimeoutError:
            await _terminate(process, readers)
            raise TimeoutError(f"{self.binary} run timed out after {self.cli_timeout}s")
        except CLIOutputLimitExceeded:
            await _terminate(process, readers)
            raise

        returncode = await process.wait()
        return (
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
            returncode,
        )

    async def _read_capped(self, stream: asyncio.StreamReader) -> bytes:
        chunks = []
        size = 0
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            size += len(chunk)
            if size > self.cli_max_buffer:
                raise CLIOutputLimitExceeded(f"CLI output exceeded {self.cli_max_buffer} bytes")
            chunks.append(chunk)
        return b"".join(chunks)


async def _terminate(process: asyncio.subprocess.Process, readers: List[asyncio.Task]) -> None:
    # The shell leads its own process group; kill the group, not just the shell
    if process.returncode is None:
        try:
            if hasattr(os, "killpg"):
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass
    await process.wait()
    for reader in readers:
        reader.cancel()
    # Reap both readers
    await asyncio.gather(*readers, return_exceptions=True)
