"""Tests for image generation and prompt derivation."""

import pytest

from draftflow.core.images import BRAND_SUFFIX, ImageStudio, prompts_for, styled_prompt
from draftflow.core.pipelines import template_strategy
from draftflow.core.store import ImageStore
from draftflow.errors import QuotaExceeded
from draftflow.models.draft import Draft, DraftStatus


@pytest.fixture
def image_store(tmp_path):
    return ImageStore(str(tmp_path / "images.db"))


def test_styled_prompt():
    assert styled_prompt("A calm child") == "A calm child" + BRAND_SUFFIX
    assert styled_prompt("A calm child", "watercolor").startswith("watercolor style: A calm child")


def test_prompts_for_strategy_sections():
    draft = Draft(
        user_id="u",
        pipeline="strategy",
        source_topic="Morning Calm",
        sections=template_strategy("Morning Calm"),
        status=DraftStatus.GENERATED,
    )

    assert len(prompts_for(draft, "instagram")) == 3
    assert prompts_for(draft, "blog")[0].startswith("Blog header for:")
    assert len(prompts_for(draft, "etsy")) == 2
    assert prompts_for(draft, "affiliates") == []


@pytest.mark.asyncio
async def test_generate_returns_data_url(fake_client, image_store):
    fake_client.generate_image.return_value = b"png-bytes"
    studio = ImageStudio(fake_client, image_store)

    image = await studio.generate("A calm child", "blog", aspect_ratio="16:9", draft_id="d1")

    assert image.image_url.startswith("data:image/png;base64,")
    assert image.is_placeholder is False
    assert image.aspect_ratio == "16:9"
    fake_client.generate_image.assert_awaited_once_with("A calm child" + BRAND_SUFFIX, "16:9")
    assert image_store.latest("d1", "blog") == image


@pytest.mark.asyncio
async def test_failed_generation_returns_placeholder(fake_client, image_store):
    fake_client.generate_image.side_effect = QuotaExceeded("Quota reached")
    studio = ImageStudio(fake_client, image_store)

    image = await studio.generate("A calm child", "instagram", aspect_ratio="2:1", draft_id="d1")

    assert image.is_placeholder is True
    assert image.image_url.startswith("https://placehold.co/")
    assert image.aspect_ratio == "1:1"
    assert image.message == "Quota reached"
    assert image_store.latest("d1", "instagram") is None
    assert image_store.for_draft("d1") == [image]
