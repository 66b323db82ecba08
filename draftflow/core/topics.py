"""Weekly topic discovery from Google Trends and autocomplete data."""

import asyncio
import logging
from typing import List, Optional

from ..clients.gemini import GeminiClient
from ..clients.trends import GoogleTrendsClient
from ..errors import DraftflowError
from ..models.content import TopicSuggestion
from ..models.draft import GenerationRequest
from .parser import FieldSpec, RecordSchema, parse_records
from .retry import RetryPolicy
from .store import TrendStore

logger = logging.getLogger(__name__)

DEFAULT_NICHE = "mindful parenting and children's yoga"

SEED_KEYWORDS = [
    "mindfulness kinderen",
    "ouderschap",
    "tantrums stoppen",
    "kinderyoga",
    "ademhaling oefeningen",
]

TOPICS_PROMPT_TEMPLATE = """You are a viral content strategist for @themindfulnl, a Dutch parenting account focused on mindfulness, gentle parenting, and children's yoga.

TRENDING QUERIES (from Google Trends Netherlands):
{queries}

YOUR TASK:
Analyze these trending queries and suggest 5 viral-worthy content topics that:
1. Align with the "{niche}" niche
2. Have high viral potential (Instagram Reels, TikTok)
3. Can drive revenue (course/ebook sales, affiliates)
4. Target Dutch parents (ages 25-40)

Format as JSON array:
[
  {{
    "topic": "5-Minute Morning Calm Routine for Toddlers",
    "viralScore": 94,
    "targetAudience": "Dutch parents with toddlers 2-5",
    "revenuePotential": "high",
    "category": "morning_routine",
    "trendingReason": "Parents searching for quick morning solutions before work"
  }}
]"""

TOPIC_SCHEMA = RecordSchema(
    fields={
        "topic": FieldSpec(default="Untitled Topic"),
        "viral_score": FieldSpec(default=50, type=int, aliases=("viralScore",)),
        "target_audience": FieldSpec(default="", aliases=("targetAudience",)),
        "revenue_potential": FieldSpec(default="medium", aliases=("revenuePotential",)),
        "category": FieldSpec(default="general"),
        "trending_reason": FieldSpec(default="", aliases=("trendingReason",)),
    }
)

FALLBACK_TOPICS = [
    TopicSuggestion(
        topic="5-Minute Morning Calm Routine for Toddlers",
        viral_score=94,
        target_audience="Dutch parents with toddlers 2-5",
        revenue_potential="high",
        category="morning_routine",
    ),
    TopicSuggestion(
        topic="Breathing Games to Stop Tantrums Instantly",
        viral_score=91,
        target_audience="Parents struggling with meltdowns",
        revenue_potential="high",
        category="tantrums",
    ),
    TopicSuggestion(
        topic="Bedtime Yoga Sequence for Restless Kids",
        viral_score=88,
        target_audience="Parents with sleep-resistant children",
        revenue_potential="medium",
        category="sleep",
    ),
    TopicSuggestion(
        topic="Emotion Faces Chart (Free Printable)",
        viral_score=86,
        target_audience="Montessori-interested parents",
        revenue_potential="high",
        category="emotions",
    ),
    TopicSuggestion(
        topic="3 Yoga Poses That Calm Anxious Children",
        viral_score=83,
        target_audience="Parents of anxious kids",
        revenue_potential="medium",
        category="yoga",
    ),
]


def _to_suggestion(record: dict) -> TopicSuggestion:
    revenue = record["revenue_potential"].lower()
    return TopicSuggestion(
        topic=record["topic"],
        viral_score=max(1, min(100, record["viral_score"])),
        target_audience=record["target_audience"],
        revenue_potential=revenue if revenue in ("low", "medium", "high") else "medium",
        category=record["category"],
        trending_reason=record["trending_reason"],
    )


class TopicDiscovery:
    """Suggests five scored topics for a week, falling back to a fixed list."""

    def __init__(
        self,
        client: GeminiClient,
        google_trends: GoogleTrendsClient,
        retry_policy: Optional[RetryPolicy] = None,
        model_chain: Optional[List[str]] = None,
        trend_store: Optional[TrendStore] = None,
        seed_keywords: Optional[List[str]] = None,
    ):
        self.client = client
        self.google_trends = google_trends
        self.retry_policy = retry_policy or RetryPolicy()
        self.model_chain = model_chain or ["gemini-2.0-flash"]
        self.trend_store = trend_store
        self.seed_keywords = seed_keywords if seed_keywords is not None else SEED_KEYWORDS

    async def trending_queries(self, region: str = "NL") -> List[str]:
        daily = (await self.google_trends.daily_trends(region))[:10]
        related = await asyncio.gather(
            *(self.google_trends.related_queries(k) for k in self.seed_keywords)
        )
        queries = list(daily)
        for suggestions in related:
            queries.extend(suggestions[:3])
        return queries

    async def discover(
        self, week: str, region: str = "NL", niche: str = DEFAULT_NICHE
    ) -> List[TopicSuggestion]:
        """Discover topics for an ISO week such as ``2026-W04``."""
        queries = await self.trending_queries(region)

        topics: List[TopicSuggestion] = []
        if queries:
            topics = await self._analyze(queries[:20], niche)

        if not topics:
            logger.info("Using fallback topic list")
            topics = [t.model_copy() for t in FALLBACK_TOPICS]

        for topic in topics:
            topic.suggested_week = week
        topics.sort(key=lambda t: t.viral_score, reverse=True)

        if self.trend_store:
            self.trend_store.save_topics(topics)
        logger.info(f"Discovered {len(topics)} topics for {week}")
        return topics

    async def _analyze(self, queries: List[str], niche: str) -> List[TopicSuggestion]:
        request = GenerationRequest(
            prompt=TOPICS_PROMPT_TEMPLATE.format(queries="\n".join(queries), niche=niche),
            models=self.model_chain,
            temperature=0.8,
            max_output_tokens=2048,
            response_format="json",
        )
        try:
            raw = await self.retry_policy.run(lambda: self.client.generate(request))
            records = parse_records(raw, TOPIC_SCHEMA, key="topics")
        except DraftflowError as e:
            logger.warning(f"Topic analysis failed: {e}")
            return []
        return [_to_suggestion(r) for r in records][:5]
