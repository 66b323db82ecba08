"""Tests for draft generation, regeneration and lifecycle."""

import asyncio
import json
from datetime import timedelta

import pytest
from unittest.mock import AsyncMock

from draftflow.clients.gemini import QUOTA_MESSAGE, GeminiClient
from draftflow.core.orchestrator import DraftOrchestrator
from draftflow.core.store import ProfileStore, TrendStore
from draftflow.errors import (
    DraftLocked,
    DraftNotReady,
    GeneratorNotConfigured,
    MissingInput,
    QuotaExceeded,
    TransientError,
    UnknownPipeline,
)
from draftflow.models.content import Trend
from draftflow.models.draft import Draft, DraftStatus, utcnow

CONTENT_LAB_JSON = json.dumps(
    {
        "technicalDraft": "Technical deep dive",
        "strategicDraft": "Strategic insight",
        "networkingDraft": "Networking hook",
    }
)


@pytest.mark.asyncio
async def test_start_returns_pending_draft_with_placeholders(orchestrator, fake_client, draft_store):
    fake_client.generate.return_value = CONTENT_LAB_JSON

    draft = await orchestrator.start("content_lab", "user-1", "AI agents", scope="2026-W04")

    assert draft.status == DraftStatus.PENDING
    assert draft.sections["technical"] == "⏳ Generating technical deep dive..."
    assert draft.approvals == {"technical": False, "strategic": False, "networking": False}
    assert draft_store.get(draft.id).status == DraftStatus.PENDING

    await orchestrator.wait_idle()

    stored = draft_store.get(draft.id)
    assert stored.status == DraftStatus.GENERATED
    assert stored.outcome == DraftStatus.GENERATED
    assert stored.sections == {
        "technical": "Technical deep dive",
        "strategic": "Strategic insight",
        "networking": "Networking hook",
    }
    assert stored.error is None
    assert orchestrator.in_flight == 0


@pytest.mark.asyncio
async def test_transient_failures_are_retried(orchestrator, fake_client, draft_store, no_sleep):
    fake_client.generate.side_effect = [TransientError("503"), CONTENT_LAB_JSON]

    draft = await orchestrator.start("content_lab", "user-1", "AI agents")
    await orchestrator.wait_idle()

    assert draft_store.get(draft.id).status == DraftStatus.GENERATED
    assert fake_client.generate.await_count == 2
    no_sleep.assert_awaited_once()


@pytest.mark.asyncio
async def test_quota_error_fills_sections_with_message(orchestrator, fake_client, draft_store):
    fake_client.generate.side_effect = QuotaExceeded(QUOTA_MESSAGE)

    draft = await orchestrator.start("content_lab", "user-1", "AI agents")
    await orchestrator.wait_idle()

    stored = draft_store.get(draft.id)
    assert stored.status == DraftStatus.ERROR
    assert stored.error == QUOTA_MESSAGE
    assert all(text == f"❌ Error: {QUOTA_MESSAGE}" for text in stored.sections.values())
    # Quota is terminal
    assert fake_client.generate.await_count == 1


@pytest.mark.asyncio
async def test_not_configured_message(orchestrator, fake_client, draft_store):
    fake_client.generate.side_effect = GeneratorNotConfigured("no key")

    draft = await orchestrator.start("linkedin", "user-1", "Remote work")
    await orchestrator.wait_idle()

    stored = draft_store.get(draft.id)
    assert stored.status == DraftStatus.ERROR
    assert stored.sections["post"] == "⚠️ AI not configured. Please add GEMINI_API_KEY."


@pytest.mark.asyncio
async def test_every_model_failing_leaves_error_draft(draft_store, retry_policy):
    client = GeminiClient(api_key="test_key")
    client._post = AsyncMock(return_value=(400, {"error": {"message": "model unavailable"}}))
    orchestrator = DraftOrchestrator(
        store=draft_store,
        client=client,
        retry_policy=retry_policy,
        model_chain=["model-a", "model-b", "model-c"],
    )

    draft = await orchestrator.start("content_lab", "user-1", "AI agents")
    await orchestrator.wait_idle()

    stored = draft_store.get(draft.id)
    assert stored.status == DraftStatus.ERROR
    assert "All attempted models failed" in stored.error
    assert all(text.startswith("❌ Error:") for text in stored.sections.values())
    assert client._post.await_count == 3


@pytest.mark.asyncio
async def test_unparsable_output_uses_fallback(orchestrator, fake_client, draft_store):
    fake_client.generate.return_value = "Sorry, here are some thoughts without JSON."

    draft = await orchestrator.start("strategy", "user-1", "Morning Calm")
    await orchestrator.wait_idle()

    stored = draft_store.get(draft.id)
    assert stored.status == DraftStatus.ERROR
    assert len(stored.sections["instagram"].posts) == 7


@pytest.mark.asyncio
async def test_unexpected_exception_still_finishes_draft(orchestrator, fake_client, draft_store):
    fake_client.generate.side_effect = RuntimeError("boom")

    draft = await orchestrator.start("linkedin", "user-1", "Remote work")
    await orchestrator.wait_idle()

    stored = draft_store.get(draft.id)
    assert stored.status == DraftStatus.ERROR
    assert stored.sections["post"] == "❌ Error: boom"


@pytest.mark.asyncio
async def test_start_validates_before_storing(orchestrator, draft_store):
    with pytest.raises(UnknownPipeline):
        await orchestrator.start("podcast", "user-1", "Topic")

    with pytest.raises(MissingInput):
        await orchestrator.start("job_hunter", "user-1", "Backend engineer at Acme")

    assert draft_store.list("user-1") == []


@pytest.mark.asyncio
async def test_planner_receives_recent_trends(draft_store, fake_client, retry_policy, tmp_path):
    trend_store = TrendStore(str(tmp_path / "drafts.db"))
    trend_store.save_trends(
        [Trend(headline="Screen time limits for toddlers", url="https://example.com/a", category="Parenting")]
    )
    orchestrator = DraftOrchestrator(
        store=draft_store,
        client=fake_client,
        retry_policy=retry_policy,
        model_chain=["model-a"],
        trend_store=trend_store,
    )
    fake_client.generate.return_value = '[{"day": 1, "topic": "Screens"}]'

    draft = await orchestrator.start("planner", "user-1", "Calm kids")
    await orchestrator.wait_idle()

    request = fake_client.generate.await_args.args[0]
    assert "Screen time limits for toddlers (Parenting)" in request.prompt
    assert draft_store.get(draft.id).sections["days"].days[0].topic == "Screens"


@pytest.mark.asyncio
async def test_regenerate_keeps_approvals(orchestrator, fake_client, draft_store, gate, make_draft):
    draft = make_draft()
    gate.approve_section(draft.id, "technical", user_id="user-1")
    fake_client.generate.return_value = CONTENT_LAB_JSON

    pending = await orchestrator.regenerate(draft.id, user_id="user-1")
    assert pending.status == DraftStatus.PENDING
    assert pending.approvals["technical"] is True

    await orchestrator.wait_idle()

    stored = draft_store.get(draft.id)
    assert stored.sections["technical"] == "Technical deep dive"
    assert stored.approvals == {"technical": True, "strategic": False, "networking": False}
    assert stored.status == DraftStatus.APPROVED
    assert stored.outcome == DraftStatus.GENERATED


@pytest.mark.asyncio
async def test_regenerate_refuses_pending_and_posted(orchestrator, make_draft):
    pending = make_draft(status=DraftStatus.PENDING)
    posted = make_draft(status=DraftStatus.POSTED)

    with pytest.raises(DraftNotReady):
        await orchestrator.regenerate(pending.id)
    with pytest.raises(DraftLocked):
        await orchestrator.regenerate(posted.id)


def test_mark_posted_is_idempotent(orchestrator, make_draft):
    draft = make_draft()

    first = orchestrator.mark_posted(draft.id, user_id="user-1")
    second = orchestrator.mark_posted(draft.id, user_id="user-1")

    assert first.status == DraftStatus.POSTED
    assert first.posted_at is not None
    assert second.posted_at == first.posted_at


def test_mark_posted_refuses_pending(orchestrator, make_draft):
    draft = make_draft(status=DraftStatus.PENDING)
    with pytest.raises(DraftNotReady):
        orchestrator.mark_posted(draft.id)


def test_stale_drafts(orchestrator, draft_store, make_draft):
    stuck = Draft(
        user_id="user-1",
        pipeline="linkedin",
        source_topic="Stuck",
        sections={"post": "Generating your post..."},
        updated_at=utcnow() - timedelta(hours=1),
    )
    draft_store.insert(stuck)
    make_draft(status=DraftStatus.PENDING)

    stale = orchestrator.stale_drafts()
    assert [d.id for d in stale] == [stuck.id]
    assert orchestrator.stale_drafts(timedelta(hours=2)) == []


@pytest.mark.asyncio
async def test_delete_cancels_generation(orchestrator, fake_client, draft_store):
    release = asyncio.Event()

    async def never_finishes(request):
        await release.wait()
        return CONTENT_LAB_JSON

    fake_client.generate.side_effect = never_finishes

    draft = await orchestrator.start("content_lab", "user-1", "AI agents")
    await asyncio.sleep(0)
    assert orchestrator.in_flight == 1

    orchestrator.delete(draft.id, user_id="user-1")
    await asyncio.sleep(0)

    assert orchestrator.in_flight == 0
    assert draft_store.find(draft.id) is None


@pytest.mark.asyncio
async def test_regenerating_draft_cannot_be_published(orchestrator, fake_client, gate, make_draft):
    draft = make_draft()
    gate.approve_section(draft.id, "technical", user_id="user-1")
    release = asyncio.Event()

    async def blocked(request):
        await release.wait()
        return CONTENT_LAB_JSON

    fake_client.generate.side_effect = blocked

    await orchestrator.regenerate(draft.id, user_id="user-1")
    await asyncio.sleep(0)

    assert gate.list_approved_sections("user-1") == []
    with pytest.raises(DraftNotReady):
        gate.get_approved_section(draft.id, "technical", user_id="user-1")

    release.set()
    await orchestrator.wait_idle()

    section = gate.get_approved_section(draft.id, "technical", user_id="user-1")
    assert section.text == "Technical deep dive"


@pytest.mark.asyncio
async def test_context_keys_may_share_argument_names(orchestrator, fake_client, draft_store):
    fake_client.generate.return_value = "A post"
    context = {"topic": "x", "scope": "y", "pipeline": "z", "user_id": "someone-else"}

    draft = await orchestrator.start("linkedin", "user-1", "Remote work", context=context)
    await orchestrator.wait_idle()

    stored = draft_store.get(draft.id)
    assert stored.user_id == "user-1"
    assert stored.source_topic == "Remote work"
    assert stored.scope is None
    assert stored.context == context


@pytest.mark.asyncio
async def test_job_hunter_uses_stored_master_resume(draft_store, fake_client, retry_policy, tmp_path):
    profiles = ProfileStore(str(tmp_path / "drafts.db"))
    profiles.update_master_resume("user-1", "Ten years of Python")
    orchestrator = DraftOrchestrator(
        store=draft_store,
        client=fake_client,
        retry_policy=retry_policy,
        model_chain=["model-a"],
        profile_store=profiles,
    )
    fake_client.generate.return_value = json.dumps({"matchScore": 80})

    draft = await orchestrator.start("job_hunter", "user-1", "Backend engineer at Acme")
    await orchestrator.wait_idle()

    assert draft.context["master_resume"] == "Ten years of Python"
    assert "Ten years of Python" in fake_client.generate.await_args.args[0].prompt

    explicit = await orchestrator.start(
        "job_hunter", "user-1", "Backend engineer", context={"master_resume": "Other resume"}
    )
    assert explicit.context["master_resume"] == "Other resume"

    with pytest.raises(MissingInput):
        await orchestrator.start("job_hunter", "user-2", "Backend engineer")
    await orchestrator.wait_idle()
