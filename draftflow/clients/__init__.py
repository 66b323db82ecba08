"""Clients for external services."""

from .canva import CanvaClient
from .gemini import GeminiClient
from .trends import GoogleTrendsClient, TrendScanner, TrendSource

__all__ = [
    "CanvaClient",
    "GeminiClient",
    "GoogleTrendsClient",
    "TrendScanner",
    "TrendSource",
]
