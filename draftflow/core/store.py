"""SQLite persistence for drafts, trends, topics, images, profiles and Canva tokens.

Every store opens a short-lived connection per call. Draft mutations run
inside ``BEGIN IMMEDIATE`` so that a read-modify-write on one draft cannot
interleave with another writer.
"""

import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

from ..errors import DraftNotFound
from ..models.content import (
    CanvaToken,
    GeneratedImage,
    TopicSuggestion,
    Trend,
    UserProfile,
)
from ..models.draft import Draft, DraftStatus, utcnow

logger = logging.getLogger(__name__)


class SQLiteStore:
    """Shared connection handling for the stores below."""

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, isolation_level=None, timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _init_database(self):
        raise NotImplementedError


class DraftStore(SQLiteStore):
    """Drafts stored as JSON documents with a few indexed columns."""

    def _init_database(self):
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS drafts (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    pipeline TEXT NOT NULL,
                    status TEXT NOT NULL,
                    scope TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    document TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_drafts_user ON drafts(user_id, updated_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_drafts_status ON drafts(status, updated_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_drafts_scope ON drafts(user_id, scope)")

    @staticmethod
    def _row_values(draft: Draft) -> Tuple:
        return (
            draft.user_id,
            draft.pipeline,
            draft.status.value,
            draft.scope,
            draft.created_at.isoformat(),
            draft.updated_at.isoformat(),
            draft.model_dump_json(),
            draft.id,
        )

    def insert(self, draft: Draft) -> Draft:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO drafts
                    (user_id, pipeline, status, scope, created_at, updated_at, document, id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._row_values(draft),
            )
        logger.debug(f"Inserted draft {draft.id} ({draft.pipeline})")
        return draft

    def find(self, draft_id: str, user_id: Optional[str] = None) -> Optional[Draft]:
        query = "SELECT document FROM drafts WHERE id = ?"
        params: List = [draft_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)

        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        return Draft.model_validate_json(row["document"]) if row else None

    def get(self, draft_id: str, user_id: Optional[str] = None) -> Draft:
        """Load a draft, scoped to ``user_id`` when given.

        Raises:
            DraftNotFound: No such draft for this user
        """
        draft = self.find(draft_id, user_id)
        if draft is None:
            raise DraftNotFound(draft_id)
        return draft

    def list(
        self,
        user_id: str,
        pipeline: Optional[str] = None,
        status: Optional[DraftStatus] = None,
        scope: Optional[str] = None,
        limit: Optional[int] = 50,
    ) -> List[Draft]:
        """Drafts for one user, most recently updated first."""
        query = "SELECT document FROM drafts WHERE user_id = ?"
        params: List = [user_id]
        if pipeline:
            query += " AND pipeline = ?"
            params.append(pipeline)
        if status:
            query += " AND status = ?"
            params.append(DraftStatus(status).value)
        if scope:
            query += " AND scope = ?"
            params.append(scope)
        query += " ORDER BY updated_at DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Draft.model_validate_json(row["document"]) for row in rows]

    def update(
        self,
        draft_id: str,
        mutate: Callable[[Draft], None],
        user_id: Optional[str] = None,
    ) -> Draft:
        """Apply ``mutate`` to a draft atomically and persist the result.

        ``mutate`` receives the freshly loaded draft and may raise to abort
        the write; the exception propagates unchanged.
        """
        with self._transaction() as conn:
            query = "SELECT document FROM drafts WHERE id = ?"
            params: List = [draft_id]
            if user_id is not None:
                query += " AND user_id = ?"
                params.append(user_id)
            row = conn.execute(query, params).fetchone()
            if row is None:
                raise DraftNotFound(draft_id)

            draft = Draft.model_validate_json(row["document"])
            mutate(draft)
            draft.updated_at = utcnow()

            conn.execute(
                """
                UPDATE drafts
                SET user_id = ?, pipeline = ?, status = ?, scope = ?,
                    created_at = ?, updated_at = ?, document = ?
                WHERE id = ?
                """,
                self._row_values(draft),
            )
        return draft

    def delete(self, draft_id: str, user_id: Optional[str] = None) -> None:
        query = "DELETE FROM drafts WHERE id = ?"
        params: List = [draft_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)

        with self._connect() as conn:
            cursor = conn.execute(query, params)
        if cursor.rowcount == 0:
            raise DraftNotFound(draft_id)
        logger.info(f"Deleted draft {draft_id}")

    def stale_pending(self, older_than: timedelta) -> List[Draft]:
        """Pending drafts not touched for longer than ``older_than``."""
        cutoff = (datetime.now(timezone.utc) - older_than).isoformat()
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT document FROM drafts
                WHERE status = ? AND updated_at < ?
                ORDER BY updated_at
                """,
                (DraftStatus.PENDING.value, cutoff),
            ).fetchall()
        return [Draft.model_validate_json(row["document"]) for row in rows]


class TrendStore(SQLiteStore):
    """Scanned trend headlines and discovered weekly topics."""

    def _init_database(self):
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS trends (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    headline TEXT NOT NULL,
                    url TEXT UNIQUE NOT NULL,
                    platform TEXT NOT NULL,
                    category TEXT,
                    trending INTEGER DEFAULT 0,
                    fetched_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS topics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    topic TEXT NOT NULL,
                    viral_score INTEGER NOT NULL,
                    suggested_week TEXT,
                    document TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_trends_fetched ON trends(fetched_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_topics_week ON topics(suggested_week)")

    def save_trends(self, trends: List[Trend]) -> int:
        """Insert new trends, refreshing ones already seen. Returns new rows."""
        added = 0
        with self._transaction() as conn:
            for trend in trends:
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO trends
                        (headline, url, platform, category, trending, fetched_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        trend.headline,
                        trend.url,
                        trend.platform,
                        trend.category,
                        int(trend.trending),
                        trend.fetched_at.isoformat(),
                    ),
                )
                if cursor.rowcount:
                    added += 1
                else:
                    conn.execute(
                        "UPDATE trends SET fetched_at = ?, trending = ? WHERE url = ?",
                        (trend.fetched_at.isoformat(), int(trend.trending), trend.url),
                    )
        logger.info(f"Stored {added} new trends ({len(trends) - added} refreshed)")
        return added

    def recent_trends(self, limit: int = 20, category: Optional[str] = None) -> List[Trend]:
        query = "SELECT * FROM trends"
        params: List = []
        if category:
            query += " WHERE category = ?"
            params.append(category)
        query += " ORDER BY fetched_at DESC, id DESC LIMIT ?"
        params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            Trend(
                headline=row["headline"],
                url=row["url"],
                platform=row["platform"],
                category=row["category"],
                trending=bool(row["trending"]),
                fetched_at=datetime.fromisoformat(row["fetched_at"]),
            )
            for row in rows
        ]

    def save_topics(self, topics: List[TopicSuggestion]) -> None:
        with self._transaction() as conn:
            for topic in topics:
                conn.execute(
                    """
                    INSERT INTO topics (topic, viral_score, suggested_week, document)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        topic.topic,
                        topic.viral_score,
                        topic.suggested_week,
                        topic.model_dump_json(),
                    ),
                )

    def topics_for_week(self, week: str) -> List[TopicSuggestion]:
        """Topics suggested for ``week``, highest viral score first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT document FROM topics
                WHERE suggested_week = ?
                ORDER BY viral_score DESC, id
                """,
                (week,),
            ).fetchall()
        return [TopicSuggestion.model_validate_json(row["document"]) for row in rows]


class ImageStore(SQLiteStore):
    """Generated images, kept so publishers can attach them later."""

    def _init_database(self):
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS images (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    draft_id TEXT,
                    content_type TEXT NOT NULL,
                    is_placeholder INTEGER DEFAULT 0,
                    created_at TEXT NOT NULL,
                    document TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_images_draft ON images(draft_id, content_type)")

    def save(self, image: GeneratedImage) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO images (draft_id, content_type, is_placeholder, created_at, document)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    image.draft_id,
                    image.content_type,
                    int(image.is_placeholder),
                    utcnow().isoformat(),
                    image.model_dump_json(),
                ),
            )

    def for_draft(self, draft_id: str) -> List[GeneratedImage]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT document FROM images WHERE draft_id = ? ORDER BY id DESC",
                (draft_id,),
            ).fetchall()
        return [GeneratedImage.model_validate_json(row["document"]) for row in rows]

    def latest(self, draft_id: str, content_type: str) -> Optional[GeneratedImage]:
        """Newest real (non-placeholder) image for one section of a draft."""
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT document FROM images
                WHERE draft_id = ? AND content_type = ? AND is_placeholder = 0
                ORDER BY id DESC LIMIT 1
                """,
                (draft_id, content_type),
            ).fetchone()
        return GeneratedImage.model_validate_json(row["document"]) if row else None


class CanvaTokenStore(SQLiteStore):
    """Canva OAuth tokens per user plus pending PKCE authorization states."""

    # Authorization requests older than this are discarded
    STATE_TTL_SECONDS = 600

    def _init_database(self):
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS canva_tokens (
                    user_id TEXT PRIMARY KEY,
                    document TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS canva_oauth_states (
                    state TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    code_verifier TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
            """)

    def save(self, token: CanvaToken) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO canva_tokens (user_id, document) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET document = excluded.document
                """,
                (token.user_id, token.model_dump_json()),
            )
        logger.info(f"Stored Canva token for {token.user_id}")

    def get(self, user_id: str) -> Optional[CanvaToken]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT document FROM canva_tokens WHERE user_id = ?", (user_id,)
            ).fetchone()
        return CanvaToken.model_validate_json(row["document"]) if row else None

    def delete(self, user_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM canva_tokens WHERE user_id = ?", (user_id,))

    def save_state(self, state: str, user_id: str, code_verifier: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO canva_oauth_states (state, user_id, code_verifier, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (state, user_id, code_verifier, time.time()),
            )

    def pop_state(self, state: str) -> Optional[Tuple[str, str]]:
        """Consume an authorization state, returning ``(user_id, verifier)``."""
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM canva_oauth_states WHERE created_at < ?",
                (time.time() - self.STATE_TTL_SECONDS,),
            )
            row = conn.execute(
                "SELECT user_id, code_verifier FROM canva_oauth_states WHERE state = ?",
                (state,),
            ).fetchone()
            if row is None:
                return None
            conn.execute("DELETE FROM canva_oauth_states WHERE state = ?", (state,))
        return row["user_id"], row["code_verifier"]


class ProfileStore(SQLiteStore):
    """One profile document per user."""

    def _init_database(self):
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS user_profiles (
                    user_id TEXT PRIMARY KEY,
                    document TEXT NOT NULL
                )
            """)

    def get(self, user_id: str) -> Optional[UserProfile]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT document FROM user_profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
        return UserProfile.model_validate_json(row["document"]) if row else None

    def update_master_resume(
        self,
        user_id: str,
        resume: str,
        bio: Optional[str] = None,
        target_roles: Optional[List[str]] = None,
    ) -> UserProfile:
        """Store a new master resume; bio and roles change only when given."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT document FROM user_profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
            if row:
                profile = UserProfile.model_validate_json(row["document"])
            else:
                profile = UserProfile(user_id=user_id)

            profile.master_resume = resume
            if bio is not None:
                profile.bio = bio
            if target_roles is not None:
                profile.target_roles = target_roles
            profile.updated_at = utcnow()

            conn.execute(
                """
                INSERT INTO user_profiles (user_id, document) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET document = excluded.document
                """,
                (user_id, profile.model_dump_json()),
            )
        logger.info(f"Updated master resume for {user_id}")
        return profile
