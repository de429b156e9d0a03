"""
Application configuration management.
"""

from typing import Optional
from urllib.parse import urlparse

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # GitHub OAuth app
    github_client_id: str = ""
    github_client_secret: str = ""
    redirect_uri: str = "http://localhost:5000/auth/github/callback"
    github_api_url: str = "https://api.github.com"
    github_oauth_url: str = "https://github.com/login/oauth"

    # Ollama
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "gemma:2b"
    ollama_binary: str = "ollama"
    probe_timeout_seconds: float = 5.0
    generate_timeout_seconds: float = 120.0
    cli_timeout_seconds: float = 300.0
    cli_max_buffer_bytes: int = 10 * 1024 * 1024
    max_diff_chars: int = 8000
    max_title_chars: int = 256
    max_description_chars: int = 2000

    # Circuit breaker around the structured generation call
    api_circuit_breaker_enabled: bool = False
    api_circuit_failure_threshold: int = 3
    api_circuit_timeout_seconds: int = 30

    # Sessions
    redis_url: Optional[str] = None
    session_ttl_seconds: int = 24 * 60 * 60
    max_sessions: int = 1000

    # Application
    host: str = "0.0.0.0"
    port: int = 5000
    server_url: str = "http://localhost:5000"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @property
    def ollama_port(self) -> int:
        """Port the inference service listens on, derived from its base URL."""
        parsed = urlparse(self.ollama_base_url)
        if parsed.port:
            return parsed.port
        return 443 if parsed.scheme == "https" else 80


# Global settings instance
settings = Settings()
