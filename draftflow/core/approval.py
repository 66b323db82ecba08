"""Human-in-the-loop approval of draft sections."""

import logging
from typing import List, Optional

from ..errors import DraftLocked, DraftNotReady, UnknownSection
from ..models.draft import ApprovedSection, Draft, DraftStatus
from .store import DraftStore

logger = logging.getLogger(__name__)


def _check_editable(draft: Draft) -> None:
    if draft.is_pending:
        raise DraftNotReady(draft.id)
    if draft.is_posted:
        raise DraftLocked(draft.id)


def _check_section(draft: Draft, section: str) -> None:
    if section not in draft.sections:
        raise UnknownSection(section, list(draft.sections))


def _settle_status(draft: Draft) -> None:
    if draft.approved_section_names():
        draft.status = DraftStatus.APPROVED
    else:
        draft.status = draft.outcome or DraftStatus.GENERATED


class ApprovalGate:
    """Per-section approval flags on generated drafts.

    Only drafts that finished generating (``generated`` or ``error``) can
    be reviewed; posted drafts are read-only. Every error is raised
    synchronously to the caller.
    """

    def __init__(self, store: DraftStore):
        self.store = store

    def approve_section(
        self, draft_id: str, section: str, user_id: Optional[str] = None
    ) -> Draft:
        """Approve one section. Approving twice has no further effect."""

        def approve(draft: Draft) -> None:
            _check_editable(draft)
            _check_section(draft, section)
            draft.approvals[section] = True
            draft.status = DraftStatus.APPROVED

        draft = self.store.update(draft_id, approve, user_id=user_id)
        logger.info(f"Approved section '{section}' of draft {draft_id}")
        return draft

    def approve_all(self, draft_id: str, user_id: Optional[str] = None) -> Draft:
        def approve(draft: Draft) -> None:
            _check_editable(draft)
            for name in draft.sections:
                draft.approvals[name] = True
            draft.status = DraftStatus.APPROVED

        draft = self.store.update(draft_id, approve, user_id=user_id)
        logger.info(f"Approved all sections of draft {draft_id}")
        return draft

    def reject_section(
        self, draft_id: str, section: str, user_id: Optional[str] = None
    ) -> Draft:
        """Clear one approval; with none left the draft becomes ``rejected``."""

        def reject(draft: Draft) -> None:
            _check_editable(draft)
            _check_section(draft, section)
            draft.approvals[section] = False
            if not draft.approved_section_names():
                draft.status = DraftStatus.REJECTED

        draft = self.store.update(draft_id, reject, user_id=user_id)
        logger.info(f"Rejected section '{section}' of draft {draft_id}")
        return draft

    def reset_approvals(self, draft_id: str, user_id: Optional[str] = None) -> Draft:
        """Clear every flag; status reverts to the generation outcome."""

        def reset(draft: Draft) -> None:
            _check_editable(draft)
            for name in draft.approvals:
                draft.approvals[name] = False
            _settle_status(draft)

        return self.store.update(draft_id, reset, user_id=user_id)

    def reset_all_approvals(self, user_id: str) -> int:
        """Clear approvals on every reviewable draft of a user.

        Pending and posted drafts are skipped. Returns the number of drafts
        that changed.
        """
        count = 0
        for draft in self.store.list(user_id, limit=None):
            if draft.is_pending or draft.is_posted:
                continue
            if not draft.approved_section_names() and draft.status != DraftStatus.REJECTED:
                continue
            try:
                self.reset_approvals(draft.id, user_id=user_id)
            except (DraftNotReady, DraftLocked):
                # Regenerated or posted since it was listed
                continue
            count += 1

        logger.info(f"Reset approvals on {count} drafts for {user_id}")
        return count

    def list_approved_sections(
        self, user_id: str, scope: Optional[str] = None
    ) -> List[ApprovedSection]:
        """Approved sections read fresh from the store, newest drafts first."""
        approved = []
        for draft in self.store.list(user_id, scope=scope, limit=None):
            if draft.is_pending:
                # Being regenerated; approvals apply again once content lands
                continue
            for name in draft.approved_section_names():
                approved.append(
                    ApprovedSection(
                        draft_id=draft.id,
                        section_name=name,
                        content=draft.sections[name],
                        pipeline=draft.pipeline,
                        source_topic=draft.source_topic,
                        scope=draft.scope,
                    )
                )
        return approved

    def get_approved_section(
        self, draft_id: str, section: str, user_id: Optional[str] = None
    ) -> ApprovedSection:
        """One approved section, for publishing.

        Raises:
            DraftNotReady: The draft is still generating
            UnknownSection: The section does not exist or is not approved
        """
        draft = self.store.get(draft_id, user_id=user_id)
        if draft.is_pending:
            raise DraftNotReady(draft.id)
        if not draft.approvals.get(section) or section not in draft.sections:
            raise UnknownSection(section, draft.approved_section_names())
        return ApprovedSection(
            draft_id=draft.id,
            section_name=section,
            content=draft.sections[section],
            pipeline=draft.pipeline,
            source_topic=draft.source_topic,
            scope=draft.scope,
        )
