"""Tests for weekly topic discovery."""

import json

import pytest
from unittest.mock import AsyncMock, Mock

from draftflow.clients.trends import GoogleTrendsClient
from draftflow.core.store import TrendStore
from draftflow.core.topics import FALLBACK_TOPICS, TopicDiscovery
from draftflow.errors import QuotaExceeded


@pytest.fixture
def google_trends():
    client = Mock(spec=GoogleTrendsClient)
    client.daily_trends = AsyncMock(return_value=["Koningsdag", "Schoolvakantie"])
    client.related_queries = AsyncMock(return_value=["a", "b", "c", "d"])
    return client


@pytest.fixture
def trend_store(tmp_path):
    return TrendStore(str(tmp_path / "topics.db"))


@pytest.mark.asyncio
async def test_trending_queries_combine_daily_and_related(fake_client, google_trends, retry_policy):
    discovery = TopicDiscovery(
        fake_client, google_trends, retry_policy, seed_keywords=["kinderyoga", "ouderschap"]
    )

    queries = await discovery.trending_queries("NL")

    assert queries == ["Koningsdag", "Schoolvakantie", "a", "b", "c", "a", "b", "c"]


@pytest.mark.asyncio
async def test_discover_parses_scores_and_stores(fake_client, google_trends, retry_policy, trend_store):
    fake_client.generate.return_value = json.dumps(
        [
            {"topic": "Calm mornings", "viralScore": 70, "revenuePotential": "HIGH"},
            {"topic": "Bedtime yoga", "viralScore": 150, "revenuePotential": "enormous"},
        ]
    )
    discovery = TopicDiscovery(fake_client, google_trends, retry_policy, trend_store=trend_store)

    topics = await discovery.discover("2026-W04")

    assert [t.topic for t in topics] == ["Bedtime yoga", "Calm mornings"]
    assert topics[0].viral_score == 100
    assert topics[0].revenue_potential == "medium"
    assert topics[1].revenue_potential == "high"
    assert all(t.suggested_week == "2026-W04" for t in topics)
    assert [t.topic for t in trend_store.topics_for_week("2026-W04")] == ["Bedtime yoga", "Calm mornings"]


@pytest.mark.asyncio
async def test_discover_falls_back_when_generation_fails(fake_client, google_trends, retry_policy):
    fake_client.generate.side_effect = QuotaExceeded("quota")
    discovery = TopicDiscovery(fake_client, google_trends, retry_policy)

    topics = await discovery.discover("2026-W05")

    assert len(topics) == 5
    assert topics[0].viral_score == 94
    assert topics[0].suggested_week == "2026-W05"
    # Shared fallback list stays untouched
    assert FALLBACK_TOPICS[0].suggested_week is None


@pytest.mark.asyncio
async def test_discover_without_queries_skips_generation(fake_client, google_trends, retry_policy):
    google_trends.daily_trends.return_value = []
    google_trends.related_queries.return_value = []
    discovery = TopicDiscovery(fake_client, google_trends, retry_policy)

    topics = await discovery.discover("2026-W06")

    assert len(topics) == 5
    fake_client.generate.assert_not_awaited()
