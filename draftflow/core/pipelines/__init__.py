"""Generation pipelines: each feature described as data."""

from typing import List

from ...errors import UnknownPipeline
from .base import PipelineConfig, error_text
from .content_lab import CONTENT_LAB
from .job_hunter import JOB_HUNTER
from .linkedin import LINKEDIN, STYLE_GUIDES
from .planner import PLANNER
from .strategy import STRATEGY, template_strategy

# Pipeline registry
AVAILABLE_PIPELINES = {
    p.name: p for p in (PLANNER, CONTENT_LAB, LINKEDIN, JOB_HUNTER, STRATEGY)
}


def get_pipeline(name: str) -> PipelineConfig:
    """Get a pipeline configuration by name.

    Raises:
        UnknownPipeline: If no pipeline is registered under ``name``
    """
    if name not in AVAILABLE_PIPELINES:
        raise UnknownPipeline(name, AVAILABLE_PIPELINES.keys())
    return AVAILABLE_PIPELINES[name]


def list_pipelines() -> List[str]:
    """List all available pipeline names."""
    return list(AVAILABLE_PIPELINES.keys())


__all__ = [
    "AVAILABLE_PIPELINES",
    "PipelineConfig",
    "STYLE_GUIDES",
    "error_text",
    "get_pipeline",
    "list_pipelines",
    "template_strategy",
]
