"""Draft lifecycle: placeholder, background generation, result write-back."""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from ..clients.gemini import GeminiClient
from ..errors import DraftflowError, DraftLocked, DraftNotReady
from ..models.draft import Draft, DraftStatus, utcnow
from .pipelines import PipelineConfig, get_pipeline
from .retry import RetryPolicy
from .store import DraftStore, ProfileStore, TrendStore

logger = logging.getLogger(__name__)


class DraftOrchestrator:
    """Creates drafts and fills them in the background.

    ``start`` stores a pending draft with placeholder text and returns at
    once; generation runs as an asyncio task. Whatever happens during
    generation the draft ends up ``generated`` or ``error`` with non-empty
    sections. Generation never touches approval flags.
    """

    def __init__(
        self,
        store: DraftStore,
        client: GeminiClient,
        retry_policy: Optional[RetryPolicy] = None,
        model_chain: Optional[List[str]] = None,
        trend_store: Optional[TrendStore] = None,
        profile_store: Optional[ProfileStore] = None,
        stale_after: timedelta = timedelta(minutes=15),
    ):
        self.store = store
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.model_chain = model_chain or ["gemini-2.0-flash"]
        self.trend_store = trend_store
        self.profile_store = profile_store
        self.stale_after = stale_after
        self._tasks: Dict[str, asyncio.Task] = {}

    async def start(
        self,
        pipeline: str,
        user_id: str,
        topic: str,
        scope: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Draft:
        """Create a pending draft and schedule its generation.

        Required inputs missing from ``context`` are taken from the user's
        stored profile when there is one.

        Raises:
            UnknownPipeline: ``pipeline`` is not registered
            MissingInput: A required context value is absent
        """
        config = get_pipeline(pipeline)
        context = dict(context or {})
        self._fill_from_profile(config, user_id, context)
        config.validate_context(context)

        if config.uses_trends and "trends" not in context and self.trend_store:
            context["trends"] = [
                f"{t.headline} ({t.category})" if t.category else t.headline
                for t in self.trend_store.recent_trends(limit=20)
            ]

        draft = Draft(
            user_id=user_id,
            pipeline=config.name,
            source_topic=topic,
            scope=scope,
            sections=config.placeholder_sections(),
            approvals={name: False for name in config.sections},
            context=context,
        )
        self.store.insert(draft)
        logger.info(f"Started {config.name} draft {draft.id} for {user_id}")

        self._schedule(draft.id, config)
        return draft

    async def regenerate(self, draft_id: str, user_id: Optional[str] = None) -> Draft:
        """Send a finished draft back through generation, keeping approvals."""
        config: Optional[PipelineConfig] = None

        def reset(draft: Draft) -> None:
            nonlocal config
            if draft.is_posted:
                raise DraftLocked(draft.id)
            if draft.is_pending:
                raise DraftNotReady(draft.id)
            config = get_pipeline(draft.pipeline)
            draft.status = DraftStatus.PENDING
            draft.sections = config.placeholder_sections()
            draft.error = None

        draft = self.store.update(draft_id, reset, user_id=user_id)
        logger.info(f"Regenerating draft {draft_id}")
        self._schedule(draft.id, config)
        return draft

    def mark_posted(self, draft_id: str, user_id: Optional[str] = None) -> Draft:
        """Lock a draft after it went out. Posted drafts never change again."""

        def post(draft: Draft) -> None:
            if draft.is_pending:
                raise DraftNotReady(draft.id)
            if draft.is_posted:
                return
            draft.status = DraftStatus.POSTED
            draft.posted_at = utcnow()

        return self.store.update(draft_id, post, user_id=user_id)

    def delete(self, draft_id: str, user_id: Optional[str] = None) -> None:
        task = self._tasks.pop(draft_id, None)
        if task and not task.done():
            task.cancel()
        self.store.delete(draft_id, user_id=user_id)

    def stale_drafts(self, older_than: Optional[timedelta] = None) -> List[Draft]:
        """Pending drafts whose generation appears to have hung."""
        return self.store.stale_pending(older_than or self.stale_after)

    async def wait_idle(self) -> None:
        """Wait for every in-flight generation to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def _fill_from_profile(
        self, config: PipelineConfig, user_id: str, context: Dict[str, Any]
    ) -> None:
        missing = [key for key in config.required_context if not context.get(key)]
        if not missing or not self.profile_store:
            return
        profile = self.profile_store.get(user_id)
        if profile is None:
            return
        stored = profile.as_context()
        for key in missing:
            if key in stored:
                context[key] = stored[key]
                logger.debug(f"Using stored {key} for {user_id}")

    def _schedule(self, draft_id: str, config: PipelineConfig) -> None:
        task = asyncio.get_running_loop().create_task(
            self._generate(draft_id, config), name=f"generate-{draft_id}"
        )
        self._tasks[draft_id] = task

        def _done(finished: asyncio.Task) -> None:
            if self._tasks.get(draft_id) is finished:
                del self._tasks[draft_id]

        task.add_done_callback(_done)

    async def _generate(self, draft_id: str, config: PipelineConfig) -> None:
        draft = self.store.get(draft_id)
        topic, context = draft.source_topic, draft.context
        request = config.request(topic, context, self.model_chain)

        error: Optional[str] = None
        try:
            raw = await self.retry_policy.run(lambda: self.client.generate(request))
            sections = config.complete(config.parse(raw, topic, context))
            outcome = DraftStatus.GENERATED
        except DraftflowError as e:
            logger.warning(f"Generation failed for draft {draft_id}: {e}")
            sections = config.complete(config.fallback(topic, context, e))
            outcome, error = DraftStatus.ERROR, str(e)
        except Exception as e:
            logger.exception(f"Unexpected error generating draft {draft_id}")
            sections = config.complete(config.fallback(topic, context, e))
            outcome, error = DraftStatus.ERROR, str(e) or e.__class__.__name__

        self._write_result(draft_id, sections, outcome, error)

    def _write_result(
        self,
        draft_id: str,
        sections: Dict[str, Any],
        outcome: DraftStatus,
        error: Optional[str],
    ) -> None:
        def fill(draft: Draft) -> None:
            draft.sections = sections
            for name in sections:
                draft.approvals.setdefault(name, False)
            draft.outcome = outcome
            draft.error = error
            draft.status = (
                DraftStatus.APPROVED if draft.approved_section_names() else outcome
            )

        try:
            self.store.update(draft_id, fill)
        except DraftflowError as e:
            logger.warning(f"Could not store generation result for {draft_id}: {e}")
            return
        logger.info(f"Draft {draft_id} is now {outcome.value}")
