"""Authenticated session data models."""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, Field


class Session(BaseModel):
    """GitHub session created by a successful OAuth exchange."""

    token: str
    user: Dict[str, Any]
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def login(self) -> str:
        return str(self.user.get("login", ""))
