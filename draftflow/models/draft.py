"""Draft records and the values that flow through the pipeline."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .sections import SectionContent, render_text


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DraftStatus(str, Enum):
    PENDING = "pending"
    GENERATED = "generated"
    ERROR = "error"
    APPROVED = "approved"
    REJECTED = "rejected"
    POSTED = "posted"


class Draft(BaseModel):
    """A unit of generated content with per-section approval flags."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Draft ID")
    user_id: str = Field(..., description="Owner identity")
    pipeline: str = Field(..., description="Pipeline that produced the draft")
    source_topic: str = Field(..., description="Seed topic or prompt")
    scope: Optional[str] = Field(None, description="Grouping key, e.g. 2026-W04")
    sections: Dict[str, SectionContent] = Field(default_factory=dict)
    status: DraftStatus = DraftStatus.PENDING
    outcome: Optional[DraftStatus] = Field(
        None, description="Generation result the status reverts to"
    )
    approvals: Dict[str, bool] = Field(default_factory=dict)
    error: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    posted_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == DraftStatus.PENDING

    @property
    def is_posted(self) -> bool:
        return self.status == DraftStatus.POSTED

    def approved_section_names(self) -> List[str]:
        return [name for name in self.sections if self.approvals.get(name)]

    def section_text(self, name: str) -> str:
        return render_text(self.sections[name])


class GenerationRequest(BaseModel):
    """Parameters for one generation call. Consumed once, never stored."""

    prompt: str
    sections: List[str] = Field(default_factory=list)
    models: List[str] = Field(..., min_length=1, description="Fallback chain")
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_output_tokens: int = Field(2048, ge=1)
    response_format: str = Field("text", pattern="^(text|json)$")


class ApprovedSection(BaseModel):
    """Read-only projection of one approved section."""

    draft_id: str
    section_name: str
    content: SectionContent
    pipeline: str
    source_topic: str
    scope: Optional[str] = None

    @property
    def text(self) -> str:
        return render_text(self.content)
