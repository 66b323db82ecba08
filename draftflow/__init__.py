"""Draft pipeline for AI-assisted marketing content with human approval."""

__version__ = "1.0.0"
