"""Three LinkedIn post variants for one trending topic."""

from typing import Any, Dict

from ..parser import FieldSpec, RecordSchema, parse_record
from .base import PipelineConfig, error_sections

CONTENT_LAB_PROMPT_TEMPLATE = """You are a LinkedIn content strategist. Create 3 different post variations about this trending topic:

## TOPIC: {topic}
{source}
---

Generate 3 distinct LinkedIn posts in this EXACT JSON format:
{{
  "technicalDraft": "<A 'Technical Deep Dive' post. Code-focused, shows expertise. Use bullet points for key technical insights. ~800-1000 characters>",
  "strategicDraft": "<A 'Strategic Insight' post. Business/marketing angle. Focus on automation, AI trends, industry impact. ~800-1000 characters>",
  "networkingDraft": "<A 'Networking Hook' post. Casual, conversational. Asks a question to spark discussion. ~500-700 characters>"
}}

RULES FOR ALL POSTS:
1. Start with a powerful hook (first line = everything on LinkedIn)
2. Use line breaks liberally (1-2 sentences per paragraph)
3. End with a question or call-to-action
4. Include 3-5 relevant hashtags
5. Sound authentic, not robotic"""

SECTIONS = ["technical", "strategic", "networking"]

VARIANTS_SCHEMA = RecordSchema(
    fields={
        name: FieldSpec(default="Generation failed", aliases=(f"{name}Draft",))
        for name in SECTIONS
    }
)


def build_prompt(topic: str, context: Dict[str, Any]) -> str:
    source_url = context.get("source_url")
    source = f"## SOURCE: {source_url}\n" if source_url else ""
    return CONTENT_LAB_PROMPT_TEMPLATE.format(topic=topic, source=source)


def parse(raw: str, topic: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return parse_record(raw, VARIANTS_SCHEMA)


def fallback(topic: str, context: Dict[str, Any], error: Exception) -> Dict[str, Any]:
    return error_sections(SECTIONS, error)


CONTENT_LAB = PipelineConfig(
    name="content_lab",
    description="Technical, strategic and networking takes on a topic",
    sections=SECTIONS,
    placeholders={
        "technical": "⏳ Generating technical deep dive...",
        "strategic": "⏳ Generating strategic insight...",
        "networking": "⏳ Generating networking hook...",
    },
    build_prompt=build_prompt,
    parse=parse,
    fallback=fallback,
    temperature=0.9,
    max_output_tokens=2048,
    response_format="json",
)
