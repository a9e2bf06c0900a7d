"""
MongoDB Beanie model for remote prompt versions.
"""

from datetime import datetime, timezone
from typing import Optional

from beanie import Document
from pydantic import Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PromptVersionMongo(Document):
    """MongoDB model for one version of a prompt group."""

    version_id: str = Field(..., description="Opaque version identifier")
    group_id: str = Field(..., description="Owning group identifier")
    name: str = Field(..., description="Version label")
    content: str = Field(..., description="Prompt text")
    description: Optional[str] = Field(None)
    status: str = Field(default="draft", description="draft, current or production")
    version_number: int = Field(..., description="Per-group sequence number")
    parent_version_id: Optional[str] = Field(None)

    # Fields owned by other tooling; stored and returned untouched
    author_notes: Optional[str] = Field(None)
    performance_score: Optional[float] = Field(None)
    usage_count: int = Field(default=0)
    is_archived: bool = Field(default=False)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    class Settings:
        name = "prompt_versions"
        indexes = [
            "version_id",
            "group_id",
            [("group_id", 1), ("version_number", -1)],  # Next-number lookup and ordering
            [("group_id", 1), ("status", 1)],  # Single current/production enforcement
        ]
