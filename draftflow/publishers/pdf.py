"""Export approved sections as simple PDF documents."""

import logging
import re
import textwrap
from io import BytesIO
from pathlib import Path

from reportlab.lib.pagesizes import LETTER
from reportlab.pdfgen import canvas

from ..errors import PublishFailed
from ..models.content import PublishResult
from ..models.draft import ApprovedSection
from .base import Publisher

logger = logging.getLogger(__name__)

MARGIN = 72
LINE_HEIGHT = 14
WRAP_WIDTH = 90


def _printable(text: str) -> str:
    # Standard PDF fonts only cover cp1252; emoji and other symbols are dropped
    return text.encode("cp1252", "ignore").decode("cp1252")


def render_pdf(title: str, body: str) -> bytes:
    """Render a title and plain-text body to PDF bytes."""
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=LETTER)
    c.setTitle(_printable(title))
    c.setAuthor("Draftflow")
    c.setCreator("Draftflow")

    width, height = LETTER
    y = height - MARGIN

    c.setFont("Helvetica-Bold", 16)
    c.drawString(MARGIN, y, _printable(title)[:100])
    y -= LINE_HEIGHT * 2
    c.setFont("Helvetica", 11)

    for paragraph in _printable(body).splitlines():
        lines = textwrap.wrap(paragraph, WRAP_WIDTH) or [""]
        for line in lines:
            if y < MARGIN:
                c.showPage()
                c.setFont("Helvetica", 11)
                y = height - MARGIN
            c.drawString(MARGIN, y, line)
            y -= LINE_HEIGHT

    c.showPage()
    c.save()
    return buffer.getvalue()


class PdfPublisher(Publisher):
    """Writes one PDF per published section under ``export_dir``."""

    def __init__(self, export_dir: str = "out"):
        self.export_dir = Path(export_dir)

    @property
    def destination(self) -> str:
        return "pdf"

    async def publish(self, section: ApprovedSection, user_id: str) -> PublishResult:
        title = f"{section.source_topic} - {section.section_name}"
        data = render_pdf(title, section.text)

        slug = re.sub(r"[^a-zA-Z0-9]+", "-", section.source_topic).strip("-").lower()
        filename = f"{slug[:40] or 'draft'}-{section.section_name}-{section.draft_id[:8]}.pdf"

        try:
            self.export_dir.mkdir(exist_ok=True, parents=True)
            path = self.export_dir / filename
            path.write_bytes(data)
        except OSError as e:
            raise PublishFailed(f"Could not write PDF: {e}")

        logger.info(f"Exported {section.section_name} of {section.draft_id} to {path}")
        return PublishResult(destination=self.destination, reference=str(path))
