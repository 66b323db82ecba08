"""Tests for Canva and PDF publishing."""

import base64
import json
import time
from urllib.parse import parse_qs, urlparse

import pytest
from unittest.mock import AsyncMock

from draftflow.clients.canva import CanvaClient, code_challenge
from draftflow.core.store import CanvaTokenStore, ImageStore
from draftflow.errors import CanvaAuthError, NotConnected, PublishFailed
from draftflow.models.content import CanvaToken, GeneratedImage
from draftflow.models.draft import ApprovedSection
from draftflow.models.sections import BlogSection, EtsyProduct, EtsySection
from draftflow.publishers import CanvaConnection, CanvaPublisher, PdfPublisher, render_pdf
from draftflow.publishers.canva import design_for

DESIGN_RESPONSE = json.dumps(
    {
        "design": {
            "id": "DAF123",
            "urls": {
                "edit_url": "https://www.canva.com/design/DAF123/edit",
                "view_url": "https://www.canva.com/design/DAF123/view",
            },
        }
    }
)


def future_ms():
    return int(time.time() * 1000) + 3_600_000


@pytest.fixture
def canva_client():
    client = CanvaClient(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:8000/api/canva/callback",
    )
    client._request = AsyncMock()
    return client


@pytest.fixture
def token_store(tmp_path):
    return CanvaTokenStore(str(tmp_path / "canva.db"))


@pytest.fixture
def image_store(tmp_path):
    return ImageStore(str(tmp_path / "canva.db"))


@pytest.fixture
def blog_section():
    return ApprovedSection(
        draft_id="draft-1234567890",
        section_name="blog",
        content=BlogSection(title="Morning Calm", outline=["Intro"]),
        pipeline="strategy",
        source_topic="Morning Calm Routine",
    )


def test_design_dimensions(blog_section):
    assert design_for(blog_section) == ("Blog: Morning Calm", 1200, 630)

    etsy = blog_section.model_copy(
        update={
            "content": EtsySection(
                products=[EtsyProduct(name="Chart Pack", description="d", price=4.99)]
            )
        }
    )
    assert design_for(etsy) == ("Etsy: Chart Pack", 2000, 2000)

    text = blog_section.model_copy(update={"content": "Just text"})
    assert design_for(text) == ("Marketing Content", 1080, 1080)


def test_template_sections_get_marked_design_title(blog_section):
    stock = blog_section.model_copy(
        update={"content": blog_section.content.model_copy(update={"notice": "⚠️ Template content"})}
    )
    assert design_for(stock) == ("[Template] Blog: Morning Calm", 1200, 630)


@pytest.mark.asyncio
async def test_publish_without_token_fails_before_io(canva_client, token_store, blog_section):
    publisher = CanvaPublisher(canva_client, token_store)

    with pytest.raises(NotConnected):
        await publisher.publish(blog_section, "user-1")
    canva_client._request.assert_not_awaited()


@pytest.mark.asyncio
async def test_publish_with_expired_token_fails_before_io(canva_client, token_store, blog_section):
    token_store.save(CanvaToken(user_id="user-1", access_token="a", refresh_token="r", expires_at=1))
    publisher = CanvaPublisher(canva_client, token_store)

    with pytest.raises(NotConnected):
        await publisher.publish(blog_section, "user-1")
    canva_client._request.assert_not_awaited()


@pytest.mark.asyncio
async def test_publish_creates_design(canva_client, token_store, blog_section):
    token_store.save(
        CanvaToken(user_id="user-1", access_token="access", refresh_token="r", expires_at=future_ms())
    )
    canva_client._request.return_value = (200, DESIGN_RESPONSE)
    publisher = CanvaPublisher(canva_client, token_store)

    result = await publisher.publish(blog_section, "user-1")

    assert result.destination == "canva"
    assert result.reference == "https://www.canva.com/design/DAF123/edit"
    assert result.external_id == "DAF123"
    assert result.asset_id is None

    method, url = canva_client._request.await_args.args
    payload = json.loads(canva_client._request.await_args.kwargs["data"])
    assert method == "POST"
    assert url.endswith("/designs")
    assert payload["design_type"] == {"type": "custom", "width": 1200, "height": 630, "units": "px"}
    assert canva_client._request.await_args.kwargs["headers"]["Authorization"] == "Bearer access"


@pytest.mark.asyncio
async def test_rejected_design_keeps_response_body(canva_client, token_store, blog_section):
    token_store.save(
        CanvaToken(user_id="user-1", access_token="access", refresh_token="r", expires_at=future_ms())
    )
    canva_client._request.return_value = (403, '{"code": "permission_denied"}')
    publisher = CanvaPublisher(canva_client, token_store)

    with pytest.raises(PublishFailed) as exc_info:
        await publisher.publish(blog_section, "user-1")

    assert exc_info.value.status == 403
    assert "permission_denied" in exc_info.value.body


@pytest.mark.asyncio
async def test_publish_uploads_latest_image(canva_client, token_store, image_store, blog_section):
    token_store.save(
        CanvaToken(user_id="user-1", access_token="access", refresh_token="r", expires_at=future_ms())
    )
    image_store.save(
        GeneratedImage(
            prompt="p",
            image_url="data:image/png;base64," + base64.b64encode(b"png").decode(),
            content_type="blog",
            draft_id="draft-1234567890",
        )
    )
    canva_client._request.side_effect = [
        (200, DESIGN_RESPONSE),
        (200, json.dumps({"asset": {"id": "asset-9"}})),
    ]
    publisher = CanvaPublisher(canva_client, token_store, image_store)

    result = await publisher.publish(blog_section, "user-1")

    assert result.asset_id == "asset-9"
    assert canva_client._request.await_args.args[1].endswith("/assets")


@pytest.mark.asyncio
async def test_failed_upload_does_not_fail_publish(canva_client, token_store, image_store, blog_section):
    token_store.save(
        CanvaToken(user_id="user-1", access_token="access", refresh_token="r", expires_at=future_ms())
    )
    image_store.save(
        GeneratedImage(
            prompt="p",
            image_url="data:image/png;base64,cG5n",
            content_type="blog",
            draft_id="draft-1234567890",
        )
    )
    canva_client._request.side_effect = [(200, DESIGN_RESPONSE), (500, "oops")]
    publisher = CanvaPublisher(canva_client, token_store, image_store)

    result = await publisher.publish(blog_section, "user-1")

    assert result.external_id == "DAF123"
    assert result.asset_id is None


# OAuth ---------------------------------------------------------------------


def test_authorization_url_uses_pkce(canva_client, token_store):
    connection = CanvaConnection(canva_client, token_store)

    url, state = connection.begin("user-1")

    params = parse_qs(urlparse(url).query)
    assert params["state"] == [state]
    assert params["code_challenge_method"] == ["S256"]
    user_id, verifier = token_store.pop_state(state)
    assert user_id == "user-1"
    assert params["code_challenge"] == [code_challenge(verifier)]


def test_authorization_url_requires_client_id(token_store):
    client = CanvaClient(client_id=None, client_secret=None, redirect_uri="http://x")
    with pytest.raises(CanvaAuthError):
        CanvaConnection(client, token_store).begin("user-1")


@pytest.mark.asyncio
async def test_complete_exchanges_code(canva_client, token_store):
    connection = CanvaConnection(canva_client, token_store)
    _, state = connection.begin("user-1")
    canva_client._request.return_value = (
        200,
        json.dumps({"access_token": "new-access", "refresh_token": "new-refresh", "expires_in": 3600}),
    )

    token = await connection.complete("auth-code", state)

    assert token.user_id == "user-1"
    assert token_store.get("user-1").access_token == "new-access"
    assert connection.is_connected("user-1") is True
    form = canva_client._request.await_args.kwargs["data"]
    assert form["grant_type"] == "authorization_code"
    assert form["code"] == "auth-code"


@pytest.mark.asyncio
async def test_complete_with_unknown_state(canva_client, token_store):
    with pytest.raises(CanvaAuthError):
        await CanvaConnection(canva_client, token_store).complete("code", "forged-state")
    canva_client._request.assert_not_awaited()


@pytest.mark.asyncio
async def test_refresh_keeps_refresh_token_when_omitted(canva_client, token_store):
    token_store.save(CanvaToken(user_id="user-1", access_token="old", refresh_token="keep-me", expires_at=1))
    canva_client._request.return_value = (200, json.dumps({"access_token": "fresh", "expires_in": 60}))

    refreshed = await CanvaConnection(canva_client, token_store).refresh("user-1")

    assert refreshed.access_token == "fresh"
    assert refreshed.refresh_token == "keep-me"


@pytest.mark.asyncio
async def test_refresh_without_token(canva_client, token_store):
    with pytest.raises(NotConnected):
        await CanvaConnection(canva_client, token_store).refresh("user-1")


# PDF -----------------------------------------------------------------------


def test_render_pdf_returns_pdf_bytes():
    data = render_pdf("Title ✨", "Line one\n\n" + "long words " * 100)
    assert data.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_pdf_publisher_writes_file(tmp_path, blog_section):
    publisher = PdfPublisher(str(tmp_path / "exports"))

    result = await publisher.publish(blog_section, "user-1")

    assert result.destination == "pdf"
    assert result.reference.endswith("morning-calm-routine-blog-draft-12.pdf")
    with open(result.reference, "rb") as f:
        assert f.read(4) == b"%PDF"


@pytest.mark.asyncio
async def test_pdf_publisher_unwritable_directory(tmp_path, blog_section):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    publisher = PdfPublisher(str(blocker / "exports"))

    with pytest.raises(PublishFailed):
        await publisher.publish(blog_section, "user-1")
