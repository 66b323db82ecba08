"""Tests for the SQLite stores."""

import time

import pytest

from draftflow.core.store import CanvaTokenStore, DraftStore, ImageStore, ProfileStore, TrendStore
from draftflow.errors import DraftNotFound, DraftNotReady
from draftflow.models.content import CanvaToken, GeneratedImage, TopicSuggestion, Trend
from draftflow.models.draft import DraftStatus


def test_get_missing_draft(draft_store):
    assert draft_store.find("missing") is None
    with pytest.raises(DraftNotFound):
        draft_store.get("missing")


def test_list_filters_and_orders(draft_store, make_draft):
    first = make_draft(pipeline="content_lab", scope="2026-W04")
    second = make_draft(pipeline="linkedin", sections={"post": "Hi"}, scope="2026-W04")
    make_draft(user_id="user-2")

    draft_store.update(first.id, lambda d: None)

    listed = draft_store.list("user-1")
    assert [d.id for d in listed] == [first.id, second.id]
    assert [d.id for d in draft_store.list("user-1", pipeline="linkedin")] == [second.id]
    assert draft_store.list("user-1", status=DraftStatus.POSTED) == []
    assert len(draft_store.list("user-1", scope="2026-W04", limit=1)) == 1


def test_update_is_atomic_on_error(draft_store, make_draft):
    draft = make_draft()

    def failing(d):
        d.sections["technical"] = "changed"
        raise DraftNotReady(d.id)

    with pytest.raises(DraftNotReady):
        draft_store.update(draft.id, failing)

    assert draft_store.get(draft.id).sections["technical"] == "Technical take"


def test_update_bumps_updated_at(draft_store, make_draft):
    draft = make_draft()
    updated = draft_store.update(draft.id, lambda d: None)
    assert updated.updated_at > draft.updated_at


def test_delete(draft_store, make_draft):
    draft = make_draft()

    with pytest.raises(DraftNotFound):
        draft_store.delete(draft.id, user_id="someone-else")

    draft_store.delete(draft.id, user_id="user-1")
    assert draft_store.find(draft.id) is None


def test_trends_deduplicate_by_url(tmp_path):
    store = TrendStore(str(tmp_path / "trends.db"))
    trend = Trend(headline="Gentle parenting goes mainstream", url="https://example.com/1")

    assert store.save_trends([trend]) == 1
    assert store.save_trends([trend, Trend(headline="Another one here", url="https://example.com/2", category="AI")]) == 1

    assert len(store.recent_trends()) == 2
    assert [t.url for t in store.recent_trends(category="AI")] == ["https://example.com/2"]


def test_topics_for_week_sorted_by_score(tmp_path):
    store = TrendStore(str(tmp_path / "trends.db"))
    store.save_topics(
        [
            TopicSuggestion(topic="Low", viral_score=40, suggested_week="2026-W04"),
            TopicSuggestion(topic="High", viral_score=90, suggested_week="2026-W04"),
            TopicSuggestion(topic="Other week", viral_score=99, suggested_week="2026-W05"),
        ]
    )

    assert [t.topic for t in store.topics_for_week("2026-W04")] == ["High", "Low"]


def test_latest_image_skips_placeholders(tmp_path):
    store = ImageStore(str(tmp_path / "images.db"))
    real = GeneratedImage(prompt="p", image_url="data:image/png;base64,AAAA", content_type="blog", draft_id="d1")
    placeholder = GeneratedImage(
        prompt="p", image_url="https://placehold.co/x", content_type="blog", draft_id="d1", is_placeholder=True
    )
    store.save(real)
    store.save(placeholder)

    assert store.latest("d1", "blog") == real
    assert store.latest("d1", "etsy") is None
    assert len(store.for_draft("d1")) == 2


def test_canva_tokens_and_states(tmp_path):
    store = CanvaTokenStore(str(tmp_path / "canva.db"))
    token = CanvaToken(user_id="u1", access_token="a", refresh_token="r", expires_at=1)

    store.save(token)
    store.save(token.model_copy(update={"access_token": "b"}))
    assert store.get("u1").access_token == "b"

    store.save_state("state-1", "u1", "verifier")
    assert store.pop_state("state-1") == ("u1", "verifier")
    assert store.pop_state("state-1") is None

    store.delete("u1")
    assert store.get("u1") is None


def test_expired_states_are_discarded(tmp_path, monkeypatch):
    store = CanvaTokenStore(str(tmp_path / "canva.db"))
    store.save_state("old", "u1", "verifier")

    later = time.time() + CanvaTokenStore.STATE_TTL_SECONDS + 1
    monkeypatch.setattr("draftflow.core.store.time.time", lambda: later)

    assert store.pop_state("old") is None


def test_stores_share_one_database_file(tmp_path):
    path = str(tmp_path / "shared.db")
    DraftStore(path)
    TrendStore(path)
    ImageStore(path)
    CanvaTokenStore(path)
    assert (tmp_path / "shared.db").exists()


def test_master_resume_update_keeps_other_profile_fields(tmp_path):
    profiles = ProfileStore(str(tmp_path / "draftflow.db"))
    assert profiles.get("user-1") is None

    profiles.update_master_resume("user-1", "First resume", bio="Engineer", target_roles=["Backend"])
    updated = profiles.update_master_resume("user-1", "Second resume")

    assert updated.master_resume == "Second resume"
    assert updated.bio == "Engineer"
    assert updated.target_roles == ["Backend"]
    assert profiles.get("user-1") == updated
    assert profiles.get("user-1").as_context() == {
        "master_resume": "Second resume",
        "bio": "Engineer",
        "target_roles": ["Backend"],
    }
    assert profiles.get("user-2") is None
