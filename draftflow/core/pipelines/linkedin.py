"""Single LinkedIn post in one of a few writing styles."""

from typing import Any, Dict

from .base import PipelineConfig, error_sections

STYLE_GUIDES = {
    "thought_leadership": "Write as a seasoned professional sharing insights. Be bold, offer unique perspectives. Use line breaks for readability.",
    "story": "Tell a personal story with a clear lesson. Start with a hook, build tension, deliver the insight.",
    "tips": "Share 5-7 actionable tips. Use emojis as bullet points. Keep each tip to 1-2 lines.",
    "controversial": "Take a strong stance on a debatable topic. Challenge conventional wisdom. Invite discussion.",
}

DEFAULT_STYLE = "thought_leadership"

LINKEDIN_PROMPT_TEMPLATE = """Write a viral LinkedIn post about: {topic}

STYLE: {style}

RULES:
1. Start with a powerful hook (first line is EVERYTHING on LinkedIn)
2. Keep paragraphs to 1-2 lines max
3. Use line breaks liberally
4. End with a question or call-to-action
5. Include 3-5 relevant hashtags at the end
6. Total length: 1200-1500 characters

Write the post now:"""


def build_prompt(topic: str, context: Dict[str, Any]) -> str:
    style = STYLE_GUIDES.get(context.get("style") or DEFAULT_STYLE)
    return LINKEDIN_PROMPT_TEMPLATE.format(
        topic=topic, style=style or STYLE_GUIDES[DEFAULT_STYLE]
    )


def parse(raw: str, topic: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {"post": raw.strip()}


def fallback(topic: str, context: Dict[str, Any], error: Exception) -> Dict[str, Any]:
    return error_sections(["post"], error)


LINKEDIN = PipelineConfig(
    name="linkedin",
    description="One LinkedIn post (thought_leadership, story, tips, controversial)",
    sections=["post"],
    placeholders={"post": "Generating your post..."},
    build_prompt=build_prompt,
    parse=parse,
    fallback=fallback,
    temperature=0.9,
    max_output_tokens=1024,
    response_format="text",
)
