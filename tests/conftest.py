import pytest
from unittest.mock import AsyncMock, Mock

from draftflow.clients.gemini import GeminiClient
from draftflow.core.approval import ApprovalGate
from draftflow.core.orchestrator import DraftOrchestrator
from draftflow.core.retry import RetryPolicy
from draftflow.core.store import DraftStore
from draftflow.models.draft import Draft, DraftStatus


@pytest.fixture
def mock_settings(tmp_path):
    """Settings pointing at a throwaway database."""
    from draftflow.models.settings import Settings

    return Settings(
        _env_file=None,
        gemini_api_key="test_key",
        database_path=str(tmp_path / "draftflow.db"),
        export_dir=str(tmp_path / "out"),
        retry_base_delay=0.0,
        dev_user_id=None,
    )


@pytest.fixture
def fake_client():
    """Gemini client whose calls are AsyncMocks."""
    client = Mock(spec=GeminiClient)
    client.generate = AsyncMock()
    client.generate_image = AsyncMock()
    return client


@pytest.fixture
def no_sleep():
    return AsyncMock()


@pytest.fixture
def retry_policy(no_sleep):
    return RetryPolicy(max_attempts=3, base_delay=1.0, multiplier=2.0, sleep=no_sleep)


@pytest.fixture
def draft_store(tmp_path):
    return DraftStore(str(tmp_path / "drafts.db"))


@pytest.fixture
def orchestrator(draft_store, fake_client, retry_policy):
    return DraftOrchestrator(
        store=draft_store,
        client=fake_client,
        retry_policy=retry_policy,
        model_chain=["model-a", "model-b", "model-c"],
    )


@pytest.fixture
def gate(draft_store):
    return ApprovalGate(draft_store)


@pytest.fixture
def make_draft(draft_store):
    """Insert a finished draft directly into the store."""

    def _make(
        user_id="user-1",
        pipeline="content_lab",
        status=DraftStatus.GENERATED,
        sections=None,
        scope=None,
        topic="AI agents in marketing",
    ):
        sections = sections or {
            "technical": "Technical take",
            "strategic": "Strategic take",
            "networking": "Networking take",
        }
        outcome = status if status in (DraftStatus.GENERATED, DraftStatus.ERROR) else DraftStatus.GENERATED
        draft = Draft(
            user_id=user_id,
            pipeline=pipeline,
            source_topic=topic,
            scope=scope,
            sections=sections,
            status=status,
            outcome=None if status == DraftStatus.PENDING else outcome,
            approvals={name: False for name in sections},
        )
        return draft_store.insert(draft)

    return _make
