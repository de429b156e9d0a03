"""AI GitHub PR Reviewer backed by a local Ollama model."""

__version__ = "0.1.0"
