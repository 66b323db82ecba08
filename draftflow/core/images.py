"""Brand-styled image generation with placeholder fallback."""

import base64
import logging
from typing import List, Optional
from urllib.parse import quote

from ..clients.gemini import GeminiClient
from ..errors import DraftflowError
from ..models.content import GeneratedImage
from ..models.draft import Draft
from ..models.sections import BlogSection, EbookSection, EtsySection, InstagramSection
from .store import ImageStore

logger = logging.getLogger(__name__)

ASPECT_RATIOS = ("1:1", "16:9", "9:16", "4:3", "3:4")

BRAND_SUFFIX = (
    ". Soft, warm, calming colors. Gentle parenting, mindfulness aesthetic. "
    "Clean, modern, minimalist design."
)

PLACEHOLDER_URL = "https://placehold.co/1024x1024/E8D5C4/6B5B4F?text={text}"


def placeholder_url(prompt: str) -> str:
    return PLACEHOLDER_URL.format(text=quote(prompt[:30]))


def styled_prompt(prompt: str, style: Optional[str] = None) -> str:
    base = f"{style} style: {prompt}" if style else prompt
    return base + BRAND_SUFFIX


def prompts_for(draft: Draft, section: str) -> List[str]:
    """Image prompts derived from one section of a draft."""
    content = draft.sections.get(section)
    if isinstance(content, InstagramSection):
        return [
            f"{post.title}. {post.hook}. Mindful parenting, gentle, warm aesthetic."
            for post in content.posts[:3]
        ]
    if isinstance(content, BlogSection):
        return [f"Blog header for: {content.title}. Mindful parenting, calming, professional."]
    if isinstance(content, EbookSection):
        return [f"Ebook chapter illustration: {content.title}. Gentle, warm, educational."]
    if isinstance(content, EtsySection):
        return [
            f"Product mockup: {product.name}. Clean, professional, Etsy listing style."
            for product in content.products[:2]
        ]
    return []


class ImageStudio:
    """Generates images for content sections.

    Generation failures never raise: the caller gets a placeholder image
    marked ``is_placeholder`` along with the reason.
    """

    def __init__(self, client: GeminiClient, image_store: Optional[ImageStore] = None):
        self.client = client
        self.image_store = image_store

    async def generate(
        self,
        prompt: str,
        content_type: str,
        aspect_ratio: str = "1:1",
        style: Optional[str] = None,
        draft_id: Optional[str] = None,
    ) -> GeneratedImage:
        if aspect_ratio not in ASPECT_RATIOS:
            logger.warning(f"Unsupported aspect ratio {aspect_ratio}, using 1:1")
            aspect_ratio = "1:1"

        try:
            data = await self.client.generate_image(styled_prompt(prompt, style), aspect_ratio)
            image = GeneratedImage(
                prompt=prompt,
                image_url=f"data:image/png;base64,{base64.b64encode(data).decode()}",
                aspect_ratio=aspect_ratio,
                style=style or "default",
                content_type=content_type,
                draft_id=draft_id,
            )
        except DraftflowError as e:
            logger.warning(f"Image generation failed, using placeholder: {e}")
            image = GeneratedImage(
                prompt=prompt,
                image_url=placeholder_url(prompt),
                aspect_ratio=aspect_ratio,
                style="placeholder",
                content_type=content_type,
                draft_id=draft_id,
                is_placeholder=True,
                message=str(e) or "Using placeholder image",
            )

        if self.image_store:
            self.image_store.save(image)
        return image
