"""Publish approved sections as Canva designs."""

import asyncio
import base64
import logging
import re
import secrets
from typing import Optional, Tuple

import aiohttp

from ..clients.canva import CanvaClient, code_challenge, generate_code_verifier
from ..core.store import CanvaTokenStore, ImageStore
from ..errors import CanvaAuthError, NotConnected, PublishFailed
from ..models.content import CanvaToken, PublishResult
from ..models.draft import ApprovedSection
from ..models.sections import (
    BlogSection,
    EbookSection,
    EtsySection,
    InstagramSection,
    TemplatedSection,
)
from .base import Publisher

logger = logging.getLogger(__name__)


def design_for(section: ApprovedSection) -> Tuple[str, int, int]:
    """Design title and pixel size for a section.

    Sections still holding stock text get a "[Template]" title prefix.
    """
    title, width, height = _design_for(section.content)
    if isinstance(section.content, TemplatedSection) and section.content.notice:
        title = f"[Template] {title}"
    return title, width, height


def _design_for(content) -> Tuple[str, int, int]:
    if isinstance(content, InstagramSection):
        first = content.posts[0].title if content.posts else "Weekly Post"
        return f"Instagram: {first}", 1080, 1080
    if isinstance(content, BlogSection):
        return f"Blog: {content.title or 'Weekly Blog'}", 1200, 630
    if isinstance(content, EbookSection):
        return f"Ebook Ch.{content.chapter_number}: {content.title}", 816, 1056
    if isinstance(content, EtsySection):
        first = content.products[0].name if content.products else "Product Listing"
        return f"Etsy: {first}", 2000, 2000
    return "Marketing Content", 1080, 1080


class CanvaConnection:
    """OAuth connect flow and token bookkeeping for one Canva app."""

    def __init__(self, client: CanvaClient, token_store: CanvaTokenStore):
        self.client = client
        self.token_store = token_store

    def begin(self, user_id: str) -> Tuple[str, str]:
        """Start authorization. Returns ``(authorize_url, state)``."""
        verifier = generate_code_verifier()
        state = secrets.token_urlsafe(24)
        url = self.client.authorization_url(state, code_challenge(verifier))
        self.token_store.save_state(state, user_id, verifier)
        return url, state

    async def complete(self, code: str, state: str) -> CanvaToken:
        """Finish authorization from the OAuth callback."""
        pending = self.token_store.pop_state(state)
        if pending is None:
            raise CanvaAuthError("Unknown or expired authorization state")

        user_id, verifier = pending
        token = await self.client.exchange_code(code, verifier, user_id)
        self.token_store.save(token)
        logger.info(f"Connected Canva for {user_id}")
        return token

    async def refresh(self, user_id: str) -> CanvaToken:
        token = self.token_store.get(user_id)
        if token is None or not token.refresh_token:
            raise NotConnected("Not connected to Canva. Please connect first.")
        refreshed = await self.client.refresh(token)
        self.token_store.save(refreshed)
        return refreshed

    def is_connected(self, user_id: str) -> bool:
        token = self.token_store.get(user_id)
        return token is not None and not token.is_expired()

    def disconnect(self, user_id: str) -> None:
        self.token_store.delete(user_id)


class CanvaPublisher(Publisher):
    """Creates a custom-size Canva design for each published section.

    The stored token is checked before any network I/O. A generated image
    for the same section is uploaded as an asset when one exists; upload
    failures are logged and do not fail the publish.
    """

    def __init__(
        self,
        client: CanvaClient,
        token_store: CanvaTokenStore,
        image_store: Optional[ImageStore] = None,
    ):
        self.client = client
        self.token_store = token_store
        self.image_store = image_store

    @property
    def destination(self) -> str:
        return "canva"

    async def publish(self, section: ApprovedSection, user_id: str) -> PublishResult:
        token = self.token_store.get(user_id)
        if token is None or token.is_expired():
            raise NotConnected(
                "Not connected to Canva or token expired. Please reconnect to Canva."
            )

        title, width, height = design_for(section)
        design = await self.client.create_design(token.access_token, title, width, height)
        logger.info(f"Created Canva design {design['id']}: {title}")

        asset_id = await self._attach_image(section, token, title)

        return PublishResult(
            destination=self.destination,
            reference=design["edit_url"],
            view_url=design["view_url"],
            external_id=design["id"],
            asset_id=asset_id,
        )

    async def _attach_image(
        self, section: ApprovedSection, token: CanvaToken, title: str
    ) -> Optional[str]:
        if self.image_store is None:
            return None
        image = self.image_store.latest(section.draft_id, section.section_name)
        if image is None:
            return None

        try:
            data = await self._image_bytes(image.image_url)
            name = re.sub(r"[^a-zA-Z0-9]", "_", title)
            return await self.client.upload_asset(token.access_token, data, name)
        except (PublishFailed, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            # Design still exists; the image can be added manually
            logger.warning(f"Failed to upload image to Canva: {e}")
            return None

    async def _image_bytes(self, image_url: str) -> bytes:
        if image_url.startswith("data:"):
            return base64.b64decode(image_url.split(",", 1)[1])

        async with aiohttp.ClientSession() as session:
            async with session.get(
                image_url, timeout=aiohttp.ClientTimeout(total=self.client.timeout)
            ) as response:
                response.raise_for_status()
                return await response.read()
