"""
MongoDB Beanie model for remote prompt groups.
"""

from datetime import datetime, timezone
from typing import List, Optional

from beanie import Document
from pydantic import Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PromptGroupMongo(Document):
    """MongoDB model for a prompt group."""

    group_id: str = Field(..., description="Opaque group identifier")
    name: str = Field(..., description="Group name")
    description: Optional[str] = Field(None, description="First version's prompt text")
    user_id: Optional[str] = Field(None, description="Owning user, if any")
    tags: List[str] = Field(default_factory=list)
    is_archived: bool = Field(default=False)
    sort_order: int = Field(default=0)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    class Settings:
        name = "prompt_groups"
        indexes = [
            "group_id",
            "user_id",
            [("sort_order", 1), ("created_at", 1)],
        ]
