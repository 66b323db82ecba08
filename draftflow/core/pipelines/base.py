"""Base classes for generation pipelines."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ...errors import GeneratorNotConfigured, MissingInput, QuotaExceeded
from ...models.draft import GenerationRequest
from ...models.sections import SectionContent

logger = logging.getLogger(__name__)

Sections = Dict[str, SectionContent]

NOT_CONFIGURED_TEXT = "⚠️ AI not configured. Please add GEMINI_API_KEY."


def error_text(error: Exception) -> str:
    """Human-readable text shown in a section whose generation failed."""
    if isinstance(error, GeneratorNotConfigured):
        return NOT_CONFIGURED_TEXT
    message = str(error) or error.__class__.__name__
    return f"❌ Error: {message}"


def is_quota_error(error: Exception) -> bool:
    return isinstance(error, QuotaExceeded) or "quota" in str(error).lower()


def error_sections(sections: List[str], error: Exception) -> Sections:
    text = error_text(error)
    return {name: text for name in sections}


@dataclass
class PipelineConfig:
    """Everything that distinguishes one generation feature from another.

    ``build_prompt(topic, context)`` returns the prompt text,
    ``parse(raw, topic, context)`` turns model output into sections and
    ``fallback(topic, context, error)`` produces the sections stored when
    generation fails. Fallback content is never empty.
    """

    name: str
    description: str
    sections: List[str]
    placeholders: Dict[str, str]
    build_prompt: Callable[[str, Dict[str, Any]], str]
    parse: Callable[[str, str, Dict[str, Any]], Sections]
    fallback: Callable[[str, Dict[str, Any], Exception], Sections]
    required_context: List[str] = field(default_factory=list)
    models: Optional[List[str]] = None
    temperature: float = 0.7
    max_output_tokens: int = 2048
    response_format: str = "json"
    uses_trends: bool = False

    def validate_context(self, context: Dict[str, Any]) -> None:
        missing = [key for key in self.required_context if not context.get(key)]
        if missing:
            raise MissingInput(
                f"Pipeline '{self.name}' requires: {', '.join(missing)}"
            )

    def placeholder_sections(self) -> Sections:
        return {
            name: self.placeholders.get(name, "⏳ Generating...")
            for name in self.sections
        }

    def request(
        self, topic: str, context: Dict[str, Any], default_models: List[str]
    ) -> GenerationRequest:
        return GenerationRequest(
            prompt=self.build_prompt(topic, context),
            sections=list(self.sections),
            models=list(self.models or default_models),
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            response_format=self.response_format,
        )

    def complete(self, parsed: Sections) -> Sections:
        """Restrict parsed output to this pipeline's sections, in order."""
        missing = [name for name in self.sections if name not in parsed]
        if missing:
            logger.warning(
                f"Pipeline '{self.name}' output missing sections: {', '.join(missing)}"
            )
        return {
            name: parsed.get(name) or "Generation failed" for name in self.sections
        }
