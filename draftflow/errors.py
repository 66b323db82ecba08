"""Exception taxonomy for generation, approval and publishing."""

from typing import Optional


class DraftflowError(Exception):
    """Base class for all draftflow errors."""


# Generation --------------------------------------------------------------


class GenerationError(DraftflowError):
    """A generation attempt failed."""


class GeneratorNotConfigured(GenerationError):
    """The generative API has no credentials configured."""


class QuotaExceeded(GenerationError):
    """The provider reported a quota or rate limit. Terminal, never retried."""


class TransientError(GenerationError):
    """Server-side or network failure that may succeed when retried."""


class ModelError(GenerationError):
    """The model rejected the request or answered with nothing usable."""

    def __init__(self, message: str, model: Optional[str] = None):
        super().__init__(message)
        self.model = model


class GenerationExhausted(GenerationError):
    """Every model in the fallback chain failed."""

    def __init__(self, last_error: str):
        super().__init__(f"All attempted models failed. Last error: {last_error}")
        self.last_error = last_error


class RetriesExhausted(GenerationError):
    """The retry policy ran out of attempts."""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class UnparsableResponse(GenerationError):
    """Model output could not be turned into structured data."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


# Drafts and approvals ----------------------------------------------------


class DraftNotFound(DraftflowError):
    def __init__(self, draft_id: str):
        super().__init__(f"Draft not found: {draft_id}")
        self.draft_id = draft_id


class DraftNotReady(DraftflowError):
    """The draft is still pending generation."""

    def __init__(self, draft_id: str):
        super().__init__(f"Draft {draft_id} is still generating")
        self.draft_id = draft_id


class DraftLocked(DraftflowError):
    """The draft has been posted and can no longer change."""

    def __init__(self, draft_id: str):
        super().__init__(f"Draft {draft_id} has been posted and is locked")
        self.draft_id = draft_id


class UnknownSection(DraftflowError):
    def __init__(self, section: str, available):
        super().__init__(
            f"Unknown section '{section}'. Available: {', '.join(available)}"
        )
        self.section = section


class UnknownPipeline(DraftflowError):
    def __init__(self, name: str, available):
        super().__init__(f"Pipeline '{name}' not found. Available: {', '.join(available)}")
        self.name = name


class MissingInput(DraftflowError):
    """A pipeline was started without an input it needs."""


# Publishing --------------------------------------------------------------


class PublishError(DraftflowError):
    """Publishing an approved section failed."""


class NotConnected(PublishError):
    """Destination credentials are missing or expired."""


class UnknownDestination(PublishError):
    def __init__(self, name: str, available):
        super().__init__(
            f"Destination '{name}' not found. Available: {', '.join(available)}"
        )
        self.name = name


class PublishFailed(PublishError):
    """The destination rejected the publish request."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class CanvaAuthError(DraftflowError):
    """OAuth authorization or token exchange with Canva failed."""
