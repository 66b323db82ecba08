"""Destinations for approved content."""

from .base import Publisher
from .canva import CanvaConnection, CanvaPublisher
from .pdf import PdfPublisher, render_pdf

__all__ = [
    "CanvaConnection",
    "CanvaPublisher",
    "PdfPublisher",
    "Publisher",
    "render_pdf",
]
