"""Content models for trends, topics, images and integrations."""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Trend(BaseModel):
    """A headline picked up from one trend source."""

    headline: str = Field(..., description="Trend headline")
    url: str = Field(..., description="Original URL")
    platform: str = Field("web", description="Source platform")
    category: Optional[str] = Field(None, description="Source category")
    trending: bool = Field(False, description="Marked hot by the source")
    fetched_at: datetime = Field(default_factory=_now, description="Fetch time")


class TopicSuggestion(BaseModel):
    """A scored content topic suggested for a week."""

    topic: str = Field(..., description="Hook-driven topic title")
    viral_score: int = Field(50, ge=1, le=100, description="Viral potential")
    target_audience: str = Field("", description="Parent segment")
    revenue_potential: str = Field("medium", pattern="^(low|medium|high)$")
    category: str = Field("general", description="Content category")
    trending_reason: str = Field("", description="Why now")
    suggested_week: Optional[str] = Field(None, description="ISO week, e.g. 2026-W04")


class GeneratedImage(BaseModel):
    """Represents an image produced for a content section."""

    prompt: str = Field(..., description="Original prompt")
    image_url: str = Field(..., description="Data URL or placeholder URL")
    aspect_ratio: str = Field("1:1", description="1:1, 16:9, 9:16, 4:3 or 3:4")
    style: Optional[str] = Field(None, description="Style hint")
    content_type: str = Field(..., description="instagram, blog, ebook or etsy")
    draft_id: Optional[str] = Field(None, description="Draft the image belongs to")
    is_placeholder: bool = Field(False, description="Generation failed")
    message: Optional[str] = Field(None, description="Why a placeholder was used")


class CanvaToken(BaseModel):
    """OAuth tokens for the Canva Connect API."""

    user_id: str
    access_token: str
    refresh_token: str
    expires_at: int = Field(..., description="Unix epoch milliseconds")
    scope: str = ""

    def is_expired(self, now_ms: Optional[int] = None) -> bool:
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return self.expires_at <= now_ms


class PublishResult(BaseModel):
    """Reference to the object a publisher created."""

    destination: str = Field(..., description="canva or pdf")
    reference: str = Field(..., description="Edit URL or file path")
    view_url: Optional[str] = None
    external_id: Optional[str] = None
    asset_id: Optional[str] = None


class UserProfile(BaseModel):
    """Per-user inputs that pipelines reuse across drafts."""

    user_id: str
    master_resume: Optional[str] = Field(None, description="Markdown resume")
    bio: str = ""
    target_roles: List[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_now)

    def as_context(self) -> Dict[str, Any]:
        """Profile values usable as pipeline context; empty ones are left out."""
        values = {
            "master_resume": self.master_resume,
            "bio": self.bio,
            "target_roles": self.target_roles,
        }
        return {key: value for key, value in values.items() if value}
