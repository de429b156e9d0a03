"""
Model Availability Prober component.

Queries the Ollama model catalog and reports whether the service is reachable
and whether the configured model is installed.
"""

import time
from typing import Optional

import httpx

from pr_reviewer.failures import failure_from_exception
from pr_reviewer.models.review import ModelStatus
from pr_reviewer.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)


def base_model_name(name: str) -> str:
    """Return the model name without its ``:tag`` suffix."""
    return name.split(":", 1)[0]


class ModelProber:
    """Single-request probe of ``GET /api/tags``; no retry."""

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._http_client = http_client

    async def probe(self) -> ModelStatus:
        """
        Probe the inference service. Never raises.

        Returns:
            ModelStatus; ``running`` is False on any transport failure,
            non-success status or malformed catalog
        """
        url = f"{self.base_url}/api/tags"
        start_time = time.monotonic()

        try:
            response = await self._get(url)
            response.raise_for_status()
            models = response.json().get("models") or []
            names = [str(entry["name"]) for entry in models]
        except Exception as e:
            failure = failure_from_exception(e, url=url)
            log_api_call(
                logger,
                service="ollama",
                endpoint="/api/tags",
                method="GET",
                duration_ms=(time.monotonic() - start_time) * 1000,
                error=failure.message,
            )
            return ModelStatus(running=False, model_available=False, error=failure.message)

        log_api_call(
            logger,
            service="ollama",
            endpoint="/api/tags",
            method="GET",
            status_code=response.status_code,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )

        target = base_model_name(self.model)
        available = any(base_model_name(name) == target for name in names)
        if not available:
            logger.warning(f"Model {self.model} not found in Ollama catalog: {names}")

        return ModelStatus(running=True, model_available=available, available_models=names)

    async def _get(self, url: str) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(url, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url)
