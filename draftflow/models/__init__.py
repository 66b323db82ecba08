"""Data models."""

from .content import (
    CanvaToken,
    GeneratedImage,
    PublishResult,
    TopicSuggestion,
    Trend,
    UserProfile,
)
from .draft import ApprovedSection, Draft, DraftStatus, GenerationRequest

__all__ = [
    "ApprovedSection",
    "CanvaToken",
    "Draft",
    "DraftStatus",
    "GeneratedImage",
    "GenerationRequest",
    "PublishResult",
    "TopicSuggestion",
    "Trend",
    "UserProfile",
]
