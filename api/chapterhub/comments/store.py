# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Cassandra access for comments, reactions, reports, bans, terms and bookmarks.

The store only translates between rows and entities. Ordering, paging and
permission checks live in the services above it. Every round-trip is bounded
by a timeout; timeouts and driver failures surface as
``BackendUnavailableError`` so callers can offer a retry.
"""

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog
from cassandra import DriverException, RequestExecutionException
from cassandra.cluster import NoHostAvailable

from .exceptions import BackendUnavailableError
from .models import (
    BannedTerm,
    Comment,
    CommentBookmark,
    CommentReport,
    Reaction,
    ReportStatus,
    UserBan,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


class CommentStore:
    """Prepared-statement access to the comment tables."""

    def __init__(self, session: "Session", keyspace: str, timeout: float = 15.0):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self.timeout = timeout
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        ks = self.keyspace

        # Comments
        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {ks}.comments
            (chapter_id, comment_id, manga_id, parent_id, author_id, author_name,
             author_avatar, author_role, content, is_spoiler, is_deleted, deleted_by,
             deleted_reason, is_hidden, is_pinned, is_reported, report_count,
             created_at, updated_at, edited_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_locator = self.session.prepare(f"""
            INSERT INTO {ks}.comment_locator (comment_id, chapter_id)
            VALUES (?, ?)
        """)

        self._get_locator = self.session.prepare(f"""
            SELECT chapter_id FROM {ks}.comment_locator
            WHERE comment_id = ?
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {ks}.comments
            WHERE chapter_id = ? AND comment_id = ?
        """)

        self._get_chapter_comments = self.session.prepare(f"""
            SELECT * FROM {ks}.comments
            WHERE chapter_id = ?
        """)

        self._get_replies = self.session.prepare(f"""
            SELECT * FROM {ks}.comments
            WHERE chapter_id = ? AND parent_id = ?
        """)

        self._update_content = self.session.prepare(f"""
            UPDATE {ks}.comments
            SET content = ?, is_spoiler = ?, edited_at = ?, updated_at = ?
            WHERE chapter_id = ? AND comment_id = ?
        """)

        self._soft_delete = self.session.prepare(f"""
            UPDATE {ks}.comments
            SET is_deleted = true, deleted_by = ?, deleted_reason = ?, updated_at = ?
            WHERE chapter_id = ? AND comment_id = ?
        """)

        self._set_hidden = self.session.prepare(f"""
            UPDATE {ks}.comments
            SET is_hidden = ?, updated_at = ?
            WHERE chapter_id = ? AND comment_id = ?
        """)

        self._set_pinned = self.session.prepare(f"""
            UPDATE {ks}.comments
            SET is_pinned = ?, updated_at = ?
            WHERE chapter_id = ? AND comment_id = ?
        """)

        self._flag_reported = self.session.prepare(f"""
            UPDATE {ks}.comments
            SET is_reported = true, report_count = ?
            WHERE chapter_id = ? AND comment_id = ?
        """)

        # Reactions
        self._get_reactions = self.session.prepare(f"""
            SELECT * FROM {ks}.comment_reactions
            WHERE comment_id = ?
        """)

        self._get_user_reaction = self.session.prepare(f"""
            SELECT * FROM {ks}.comment_reactions
            WHERE comment_id = ? AND user_id = ?
        """)

        self._upsert_reaction = self.session.prepare(f"""
            INSERT INTO {ks}.comment_reactions
            (comment_id, user_id, reaction_type, created_at)
            VALUES (?, ?, ?, ?)
        """)

        self._delete_reaction = self.session.prepare(f"""
            DELETE FROM {ks}.comment_reactions
            WHERE comment_id = ? AND user_id = ?
        """)

        # Reports
        self._insert_report = self.session.prepare(f"""
            INSERT INTO {ks}.comment_reports
            (report_id, comment_id, chapter_id, reporter_id, reported_user_id,
             reason, description, status, resolution_note, resolution_action,
             reviewed_by, reviewed_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_report = self.session.prepare(f"""
            SELECT * FROM {ks}.comment_reports
            WHERE report_id = ?
        """)

        self._get_reports_by_status = self.session.prepare(f"""
            SELECT * FROM {ks}.comment_reports
            WHERE status = ?
        """)

        self._get_all_reports = self.session.prepare(f"""
            SELECT * FROM {ks}.comment_reports
        """)

        self._update_report = self.session.prepare(f"""
            UPDATE {ks}.comment_reports
            SET status = ?, resolution_note = ?, resolution_action = ?,
                reviewed_by = ?, reviewed_at = ?
            WHERE report_id = ?
        """)

        # Bans
        self._insert_ban = self.session.prepare(f"""
            INSERT INTO {ks}.user_bans
            (ban_id, user_id, reason, banned_by, is_permanent, expires_at,
             is_active, created_at, lifted_by, lifted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_ban = self.session.prepare(f"""
            SELECT * FROM {ks}.user_bans
            WHERE ban_id = ?
        """)

        self._get_user_bans = self.session.prepare(f"""
            SELECT * FROM {ks}.user_bans
            WHERE user_id = ?
        """)

        self._get_all_bans = self.session.prepare(f"""
            SELECT * FROM {ks}.user_bans
        """)

        self._deactivate_ban = self.session.prepare(f"""
            UPDATE {ks}.user_bans
            SET is_active = false, lifted_by = ?, lifted_at = ?
            WHERE ban_id = ?
        """)

        # Banned terms
        self._get_banned_terms = self.session.prepare(f"""
            SELECT * FROM {ks}.banned_terms
        """)

        self._upsert_banned_term = self.session.prepare(f"""
            INSERT INTO {ks}.banned_terms
            (term, severity, replacement, created_by, created_at)
            VALUES (?, ?, ?, ?, ?)
        """)

        self._delete_banned_term = self.session.prepare(f"""
            DELETE FROM {ks}.banned_terms
            WHERE term = ?
        """)

        # Bookmarks
        self._get_bookmark = self.session.prepare(f"""
            SELECT * FROM {ks}.comment_bookmarks
            WHERE user_id = ? AND comment_id = ?
        """)

        self._get_user_bookmarks = self.session.prepare(f"""
            SELECT * FROM {ks}.comment_bookmarks
            WHERE user_id = ?
        """)

        self._insert_bookmark = self.session.prepare(f"""
            INSERT INTO {ks}.comment_bookmarks
            (user_id, comment_id, chapter_id, manga_id, created_at)
            VALUES (?, ?, ?, ?, ?)
        """)

        self._delete_bookmark = self.session.prepare(f"""
            DELETE FROM {ks}.comment_bookmarks
            WHERE user_id = ? AND comment_id = ?
        """)

    async def _execute(self, statement: Any, params: list[Any] | None = None) -> Any:
        """Run one statement with the store timeout."""
        try:
            return await asyncio.wait_for(
                self.session.aexecute(statement, params),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            logger.warning("store_timeout", timeout=self.timeout)
            raise BackendUnavailableError() from e
        except (DriverException, RequestExecutionException, NoHostAvailable) as e:
            logger.error("store_error", error=str(e), error_type=type(e).__name__)
            raise BackendUnavailableError() from e

    # ==========================================================================
    # Comments
    # ==========================================================================

    async def insert_comment(self, comment: Comment) -> Comment:
        await self._execute(
            self._insert_comment,
            [
                comment.chapter_id,
                comment.comment_id,
                comment.manga_id,
                comment.parent_id,
                comment.author_id,
                comment.author_name,
                comment.author_avatar,
                comment.author_role,
                comment.content,
                comment.is_spoiler,
                comment.is_deleted,
                comment.deleted_by,
                comment.deleted_reason,
                comment.is_hidden,
                comment.is_pinned,
                comment.is_reported,
                comment.report_count,
                comment.created_at,
                comment.updated_at,
                comment.edited_at,
            ],
        )
        await self._execute(
            self._insert_locator, [comment.comment_id, comment.chapter_id]
        )
        return comment

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        """Resolve a comment by id, including soft-deleted ones."""
        rows = await self._execute(self._get_locator, [comment_id])
        locator = _first(rows)
        if locator is None:
            return None

        rows = await self._execute(
            self._get_comment, [locator.chapter_id, comment_id]
        )
        row = _first(rows)
        return Comment.from_row(row) if row else None

    async def list_chapter_comments(self, chapter_id: UUID) -> list[Comment]:
        """All comment rows of a chapter, top-level and replies, unordered."""
        rows = await self._execute(self._get_chapter_comments, [chapter_id])
        return [Comment.from_row(row) for row in rows]

    async def list_replies(self, chapter_id: UUID, parent_id: UUID) -> list[Comment]:
        rows = await self._execute(self._get_replies, [chapter_id, parent_id])
        return [Comment.from_row(row) for row in rows]

    async def update_content(
        self, comment: Comment, content: str, is_spoiler: bool
    ) -> Comment:
        now = datetime.now(UTC)
        await self._execute(
            self._update_content,
            [content, is_spoiler, now, now, comment.chapter_id, comment.comment_id],
        )
        comment.content = content
        comment.is_spoiler = is_spoiler
        comment.edited_at = now
        comment.updated_at = now
        return comment

    async def soft_delete(
        self, comment: Comment, deleted_by: UUID, reason: str | None = None
    ) -> Comment:
        now = datetime.now(UTC)
        await self._execute(
            self._soft_delete,
            [deleted_by, reason, now, comment.chapter_id, comment.comment_id],
        )
        comment.is_deleted = True
        comment.deleted_by = deleted_by
        comment.deleted_reason = reason
        comment.updated_at = now
        return comment

    async def set_hidden(self, comment: Comment, hidden: bool) -> Comment:
        now = datetime.now(UTC)
        await self._execute(
            self._set_hidden, [hidden, now, comment.chapter_id, comment.comment_id]
        )
        comment.is_hidden = hidden
        comment.updated_at = now
        return comment

    async def set_pinned(self, comment: Comment, pinned: bool) -> Comment:
        now = datetime.now(UTC)
        await self._execute(
            self._set_pinned, [pinned, now, comment.chapter_id, comment.comment_id]
        )
        comment.is_pinned = pinned
        comment.updated_at = now
        return comment

    async def flag_reported(self, comment: Comment) -> Comment:
        """Mark a comment as reported and bump its report counter."""
        report_count = comment.report_count + 1
        await self._execute(
            self._flag_reported,
            [report_count, comment.chapter_id, comment.comment_id],
        )
        comment.is_reported = True
        comment.report_count = report_count
        return comment

    # ==========================================================================
    # Reactions
    # ==========================================================================

    async def list_reactions(self, comment_id: UUID) -> list[Reaction]:
        rows = await self._execute(self._get_reactions, [comment_id])
        return [Reaction.from_row(row) for row in rows]

    async def get_user_reaction(
        self, comment_id: UUID, user_id: UUID
    ) -> Reaction | None:
        rows = await self._execute(self._get_user_reaction, [comment_id, user_id])
        row = _first(rows)
        return Reaction.from_row(row) if row else None

    async def upsert_reaction(self, reaction: Reaction) -> Reaction:
        """Insert or replace the user's reaction; the key is (comment, user)."""
        await self._execute(
            self._upsert_reaction,
            [
                reaction.comment_id,
                reaction.user_id,
                reaction.reaction_type.value,
                reaction.created_at,
            ],
        )
        return reaction

    async def delete_reaction(self, comment_id: UUID, user_id: UUID) -> None:
        await self._execute(self._delete_reaction, [comment_id, user_id])

    # ==========================================================================
    # Reports
    # ==========================================================================

    async def insert_report(self, report: CommentReport) -> CommentReport:
        await self._execute(
            self._insert_report,
            [
                report.report_id,
                report.comment_id,
                report.chapter_id,
                report.reporter_id,
                report.reported_user_id,
                report.reason.value,
                report.description,
                report.status.value,
                report.resolution_note,
                report.resolution_action.value if report.resolution_action else None,
                report.reviewed_by,
                report.reviewed_at,
                report.created_at,
            ],
        )
        return report

    async def get_report(self, report_id: UUID) -> CommentReport | None:
        rows = await self._execute(self._get_report, [report_id])
        row = _first(rows)
        return CommentReport.from_row(row) if row else None

    async def list_reports(
        self, status: ReportStatus | None = None, limit: int = 50
    ) -> list[CommentReport]:
        """Reports newest first, optionally filtered by status."""
        if status is not None:
            rows = await self._execute(self._get_reports_by_status, [status.value])
        else:
            rows = await self._execute(self._get_all_reports)

        reports = [CommentReport.from_row(row) for row in rows]
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports[:limit]

    async def update_report_status(self, report: CommentReport) -> CommentReport:
        await self._execute(
            self._update_report,
            [
                report.status.value,
                report.resolution_note,
                report.resolution_action.value if report.resolution_action else None,
                report.reviewed_by,
                report.reviewed_at,
                report.report_id,
            ],
        )
        return report

    # ==========================================================================
    # Bans
    # ==========================================================================

    async def insert_ban(self, ban: UserBan) -> UserBan:
        await self._execute(
            self._insert_ban,
            [
                ban.ban_id,
                ban.user_id,
                ban.reason,
                ban.banned_by,
                ban.is_permanent,
                ban.expires_at,
                ban.is_active,
                ban.created_at,
                ban.lifted_by,
                ban.lifted_at,
            ],
        )
        return ban

    async def get_ban(self, ban_id: UUID) -> UserBan | None:
        rows = await self._execute(self._get_ban, [ban_id])
        row = _first(rows)
        return UserBan.from_row(row) if row else None

    async def get_user_bans(self, user_id: UUID) -> list[UserBan]:
        """Ban history of a user, newest first."""
        rows = await self._execute(self._get_user_bans, [user_id])
        bans = [UserBan.from_row(row) for row in rows]
        bans.sort(key=lambda b: b.created_at, reverse=True)
        return bans

    async def list_bans(self, active_only: bool = True) -> list[UserBan]:
        rows = await self._execute(self._get_all_bans)
        bans = [UserBan.from_row(row) for row in rows]
        if active_only:
            bans = [b for b in bans if b.is_in_force()]
        bans.sort(key=lambda b: b.created_at, reverse=True)
        return bans

    async def deactivate_ban(self, ban: UserBan, lifted_by: UUID) -> UserBan:
        now = datetime.now(UTC)
        await self._execute(self._deactivate_ban, [lifted_by, now, ban.ban_id])
        ban.is_active = False
        ban.lifted_by = lifted_by
        ban.lifted_at = now
        return ban

    # ==========================================================================
    # Banned terms
    # ==========================================================================

    async def list_banned_terms(self) -> list[BannedTerm]:
        rows = await self._execute(self._get_banned_terms)
        return sorted((BannedTerm.from_row(row) for row in rows), key=lambda t: t.term)

    async def upsert_banned_term(self, term: BannedTerm) -> BannedTerm:
        await self._execute(
            self._upsert_banned_term,
            [
                term.term,
                term.severity.value,
                term.replacement,
                term.created_by,
                term.created_at,
            ],
        )
        return term

    async def delete_banned_term(self, term: str) -> None:
        await self._execute(self._delete_banned_term, [term])

    # ==========================================================================
    # Bookmarks
    # ==========================================================================

    async def get_bookmark(
        self, user_id: UUID, comment_id: UUID
    ) -> CommentBookmark | None:
        row = _first(await self._execute(self._get_bookmark, [user_id, comment_id]))
        return CommentBookmark.from_row(row) if row else None

    async def list_bookmarks(self, user_id: UUID) -> list[CommentBookmark]:
        rows = await self._execute(self._get_user_bookmarks, [user_id])
        return [CommentBookmark.from_row(row) for row in rows]

    async def insert_bookmark(self, bookmark: CommentBookmark) -> CommentBookmark:
        await self._execute(
            self._insert_bookmark,
            [
                bookmark.user_id,
                bookmark.comment_id,
                bookmark.chapter_id,
                bookmark.manga_id,
                bookmark.created_at,
            ],
        )
        return bookmark

    async def delete_bookmark(self, user_id: UUID, comment_id: UUID) -> None:
        await self._execute(self._delete_bookmark, [user_id, comment_id])


def _first(rows: Any) -> Any:
    for row in rows or []:
        return row
    return None
