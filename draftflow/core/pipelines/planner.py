"""Seven-day social media plan suggested from recent trends."""

from typing import Any, Dict

from ...models.sections import PlanDay, PlanSection
from ..parser import FieldSpec, RecordSchema, parse_records
from .base import PipelineConfig, error_sections

PLANNER_PROMPT_TEMPLATE = """You are "The Mindful NL" AI Marketing Agent.
Your mission is to suggest a 7-day social media marketing plan based on the
user's focus and current market trends.

Focus:
{topic}

Current Market Trends:
{trends}

Generate a 7-day plan. For each day, provide:
- Day Number (1-7)
- Topic (e.g., "The Power of Mindfulness in Meltdowns")
- Format (Blog, Tweet, Carousel, Reel, Flyer, IG Caption, Viral Hooks)
- Hook (A scroll-stopping opening)
- Rationale (Why this topic now, based on context/trends)

Format the output as a JSON array of objects. Use EXACTLY these keys:
"day", "topic", "format", "hook", "rationale".
Example:
[
  {{ "day": 1, "topic": "...", "format": "...", "hook": "...", "rationale": "..." }}
]

Return ONLY the JSON array."""

PLAN_DAY_SCHEMA = RecordSchema(
    fields={
        "day": FieldSpec(default=0, type=int),
        "topic": FieldSpec(default="Untitled Topic"),
        "format": FieldSpec(default="Blog"),
        "hook": FieldSpec(default=""),
        "rationale": FieldSpec(
            default="Strategic alignment with recent trends.",
            aliases=("ration", "reason"),
        ),
    }
)


def build_prompt(topic: str, context: Dict[str, Any]) -> str:
    trends = context.get("trends") or []
    trend_lines = "\n".join(f"- {t}" for t in trends) or "- No recent trends recorded"
    return PLANNER_PROMPT_TEMPLATE.format(topic=topic, trends=trend_lines)


def parse(raw: str, topic: str, context: Dict[str, Any]) -> Dict[str, Any]:
    records = parse_records(raw, PLAN_DAY_SCHEMA, key="days")
    return {"days": PlanSection(days=[PlanDay(**r) for r in records])}


def fallback(topic: str, context: Dict[str, Any], error: Exception) -> Dict[str, Any]:
    return error_sections(["days"], error)


PLANNER = PipelineConfig(
    name="planner",
    description="7-day social media plan from recent trends",
    sections=["days"],
    placeholders={"days": "⏳ Planning your week..."},
    build_prompt=build_prompt,
    parse=parse,
    fallback=fallback,
    temperature=0.7,
    max_output_tokens=2048,
    response_format="json",
    uses_trends=True,
)
