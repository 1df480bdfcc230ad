"""Database models for chapter comments.

Cassandra table definitions for:
- Comments: one partition per chapter, replies reference a top-level parent
- Comment reactions: one row per (comment, user), so switching type is an upsert
- Comment reports: moderation queue with a status index
- User bans: ban history, never deleted
- Banned terms: admin-managed word list for the moderation filter
- Comment bookmarks: one partition per user

A chapter partition is read whole and ordered in Python: pinned-first and
popularity ordering cannot be expressed as clustering order.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class ReactionType(str, Enum):
    """Available reaction types for comments."""

    LIKE = "like"
    DISLIKE = "dislike"
    LOVE = "love"
    LAUGH = "laugh"
    ANGRY = "angry"
    SAD = "sad"


class ReportReason(str, Enum):
    """Reasons for reporting a comment."""

    SPAM = "spam"
    HARASSMENT = "harassment"
    SPOILER = "spoiler"
    INAPPROPRIATE = "inappropriate"
    HATE_SPEECH = "hate_speech"
    OTHER = "other"


class ReportStatus(str, Enum):
    """Report moderation status."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"

    @property
    def is_terminal(self) -> bool:
        return self in (ReportStatus.RESOLVED, ReportStatus.DISMISSED)


class ResolutionAction(str, Enum):
    """Side effect applied when a report is resolved."""

    HIDE = "hide"
    DELETE = "delete"
    BAN = "ban"


class BookmarkSort(str, Enum):
    """Orderings of a reader's bookmarked comments."""

    NEWEST = "newest"
    OLDEST = "oldest"
    MANGA = "manga"


class Severity(str, Enum):
    """Moderation severity of a piece of text."""

    NONE = "none"
    MODERATE = "moderate"
    SEVERE = "severe"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    chapter_id UUID,
    comment_id UUID,
    manga_id UUID,
    parent_id UUID,
    author_id UUID,
    author_name TEXT,
    author_avatar TEXT,
    author_role TEXT,
    content TEXT,
    is_spoiler BOOLEAN,
    is_deleted BOOLEAN,
    deleted_by UUID,
    deleted_reason TEXT,
    is_hidden BOOLEAN,
    is_pinned BOOLEAN,
    is_reported BOOLEAN,
    report_count INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    edited_at TIMESTAMP,
    PRIMARY KEY ((chapter_id), comment_id)
)
"""

# Replies are read per parent inside the chapter partition
COMMENT_PARENT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS comments_parent_idx
ON {keyspace}.comments (parent_id)
"""

# Comment id -> chapter partition, for lookups by id alone
COMMENT_LOCATOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_locator (
    comment_id UUID PRIMARY KEY,
    chapter_id UUID
)
"""

REACTION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_reactions (
    comment_id UUID,
    user_id UUID,
    reaction_type TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((comment_id), user_id)
)
"""

REPORT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_reports (
    report_id UUID PRIMARY KEY,
    comment_id UUID,
    chapter_id UUID,
    reporter_id UUID,
    reported_user_id UUID,
    reason TEXT,
    description TEXT,
    status TEXT,
    resolution_note TEXT,
    resolution_action TEXT,
    reviewed_by UUID,
    reviewed_at TIMESTAMP,
    created_at TIMESTAMP
)
"""

REPORT_STATUS_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS comment_reports_status_idx
ON {keyspace}.comment_reports (status)
"""

USER_BAN_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.user_bans (
    ban_id UUID PRIMARY KEY,
    user_id UUID,
    reason TEXT,
    banned_by UUID,
    is_permanent BOOLEAN,
    expires_at TIMESTAMP,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    lifted_by UUID,
    lifted_at TIMESTAMP
)
"""

USER_BAN_USER_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS user_bans_user_idx
ON {keyspace}.user_bans (user_id)
"""

BANNED_TERM_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.banned_terms (
    term TEXT PRIMARY KEY,
    severity TEXT,
    replacement TEXT,
    created_by UUID,
    created_at TIMESTAMP
)
"""

BOOKMARK_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_bookmarks (
    user_id UUID,
    comment_id UUID,
    chapter_id UUID,
    manga_id UUID,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), comment_id)
)
"""

COMMENTS_TABLES_CQL = [
    COMMENT_TABLE_CQL,
    COMMENT_PARENT_INDEX_CQL,
    COMMENT_LOCATOR_TABLE_CQL,
    REACTION_TABLE_CQL,
    REPORT_TABLE_CQL,
    REPORT_STATUS_INDEX_CQL,
    USER_BAN_TABLE_CQL,
    USER_BAN_USER_INDEX_CQL,
    BANNED_TERM_TABLE_CQL,
    BOOKMARK_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Comment entity with moderation flags."""

    comment_id: UUID
    chapter_id: UUID
    manga_id: UUID
    author_id: UUID
    author_name: str
    author_avatar: str | None
    author_role: str
    parent_id: UUID | None
    content: str
    is_spoiler: bool
    is_deleted: bool
    deleted_by: UUID | None
    deleted_reason: str | None
    is_hidden: bool
    is_pinned: bool
    is_reported: bool
    report_count: int
    created_at: datetime
    updated_at: datetime
    edited_at: datetime | None = None

    @property
    def is_top_level(self) -> bool:
        return self.parent_id is None

    @property
    def is_edited(self) -> bool:
        """Content was changed after creation.

        Pinning, hiding and deleting touch ``updated_at`` too, so the edit
        marker is driven by ``edited_at`` alone.
        """
        return self.edited_at is not None

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        return cls(
            comment_id=row.comment_id,
            chapter_id=row.chapter_id,
            manga_id=row.manga_id,
            author_id=row.author_id,
            author_name=row.author_name or "Reader",
            author_avatar=row.author_avatar,
            author_role=row.author_role or "user",
            parent_id=row.parent_id,
            content=row.content,
            is_spoiler=row.is_spoiler or False,
            is_deleted=row.is_deleted or False,
            deleted_by=row.deleted_by,
            deleted_reason=row.deleted_reason,
            is_hidden=row.is_hidden or False,
            is_pinned=row.is_pinned or False,
            is_reported=row.is_reported or False,
            report_count=row.report_count or 0,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at or row.created_at),
            edited_at=_aware(row.edited_at),
        )


@dataclass
class Reaction:
    """User reaction to a comment."""

    comment_id: UUID
    user_id: UUID
    reaction_type: ReactionType
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Reaction":
        """Create Reaction from Cassandra row."""
        return cls(
            comment_id=row.comment_id,
            user_id=row.user_id,
            reaction_type=ReactionType(row.reaction_type),
            created_at=_aware(row.created_at),
        )


@dataclass
class CommentReport:
    """Report of a comment for moderation."""

    report_id: UUID
    comment_id: UUID
    chapter_id: UUID
    reporter_id: UUID
    reported_user_id: UUID
    reason: ReportReason
    description: str | None
    status: ReportStatus
    created_at: datetime
    resolution_note: str | None = None
    resolution_action: ResolutionAction | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "CommentReport":
        """Create CommentReport from Cassandra row."""
        return cls(
            report_id=row.report_id,
            comment_id=row.comment_id,
            chapter_id=row.chapter_id,
            reporter_id=row.reporter_id,
            reported_user_id=row.reported_user_id,
            reason=ReportReason(row.reason),
            description=row.description,
            status=ReportStatus(row.status),
            created_at=_aware(row.created_at),
            resolution_note=row.resolution_note,
            resolution_action=(
                ResolutionAction(row.resolution_action)
                if row.resolution_action
                else None
            ),
            reviewed_by=row.reviewed_by,
            reviewed_at=_aware(row.reviewed_at),
        )


@dataclass
class UserBan:
    """Comment ban for a user. Lifting a ban keeps the record."""

    ban_id: UUID
    user_id: UUID
    reason: str
    banned_by: UUID
    is_permanent: bool
    expires_at: datetime | None
    is_active: bool
    created_at: datetime
    lifted_by: UUID | None = None
    lifted_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "UserBan":
        """Create entity from Cassandra row."""
        return cls(
            ban_id=row.ban_id,
            user_id=row.user_id,
            reason=row.reason,
            banned_by=row.banned_by,
            is_permanent=bool(row.is_permanent),
            expires_at=_aware(row.expires_at),
            is_active=bool(row.is_active),
            created_at=_aware(row.created_at),
            lifted_by=row.lifted_by,
            lifted_at=_aware(row.lifted_at),
        )

    def is_in_force(self, now: datetime | None = None) -> bool:
        """Active and either permanent or not yet expired."""
        if not self.is_active:
            return False
        if self.is_permanent:
            return True
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) < self.expires_at


@dataclass
class BannedTerm:
    """Admin-managed term checked by the moderation filter."""

    term: str
    severity: Severity
    replacement: str | None
    created_by: UUID | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "BannedTerm":
        """Create entity from Cassandra row."""
        return cls(
            term=row.term,
            severity=Severity(row.severity),
            replacement=row.replacement,
            created_by=row.created_by,
            created_at=_aware(row.created_at),
        )


@dataclass
class CommentBookmark:
    """A comment saved by a reader."""

    user_id: UUID
    comment_id: UUID
    chapter_id: UUID
    manga_id: UUID
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "CommentBookmark":
        return cls(
            user_id=row.user_id,
            comment_id=row.comment_id,
            chapter_id=row.chapter_id,
            manga_id=row.manga_id,
            created_at=_aware(row.created_at),
        )


def _aware(value: datetime | None) -> datetime | None:
    # The driver returns naive UTC datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    chapter_id: UUID,
    manga_id: UUID,
    author_id: UUID,
    author_name: str,
    content: str,
    parent_id: UUID | None = None,
    author_avatar: str | None = None,
    author_role: str = "user",
    is_spoiler: bool = False,
) -> Comment:
    """Create a new comment with default values."""
    now = datetime.now(UTC)
    return Comment(
        comment_id=uuid4(),
        chapter_id=chapter_id,
        manga_id=manga_id,
        author_id=author_id,
        author_name=author_name,
        author_avatar=author_avatar,
        author_role=author_role,
        parent_id=parent_id,
        content=content,
        is_spoiler=is_spoiler,
        is_deleted=False,
        deleted_by=None,
        deleted_reason=None,
        is_hidden=False,
        is_pinned=False,
        is_reported=False,
        report_count=0,
        created_at=now,
        updated_at=now,
    )


def create_reaction(
    comment_id: UUID, user_id: UUID, reaction_type: ReactionType
) -> Reaction:
    """Create a reaction row."""
    return Reaction(
        comment_id=comment_id,
        user_id=user_id,
        reaction_type=reaction_type,
        created_at=datetime.now(UTC),
    )


def create_bookmark(user_id: UUID, comment: Comment) -> CommentBookmark:
    return CommentBookmark(
        user_id=user_id,
        comment_id=comment.comment_id,
        chapter_id=comment.chapter_id,
        manga_id=comment.manga_id,
        created_at=datetime.now(UTC),
    )


def create_report(
    comment: Comment,
    reporter_id: UUID,
    reason: ReportReason,
    description: str | None = None,
) -> CommentReport:
    """Create a new pending report against a comment."""
    return CommentReport(
        report_id=uuid4(),
        comment_id=comment.comment_id,
        chapter_id=comment.chapter_id,
        reporter_id=reporter_id,
        reported_user_id=comment.author_id,
        reason=reason,
        description=description,
        status=ReportStatus.PENDING,
        created_at=datetime.now(UTC),
    )


def create_user_ban(
    user_id: UUID,
    banned_by: UUID,
    reason: str,
    duration_days: int | None = None,
    now: datetime | None = None,
) -> UserBan:
    """Create a new ban.

    No duration means a permanent ban; otherwise the ban expires exactly
    ``duration_days`` days after creation.
    """
    now = now or datetime.now(UTC)
    is_permanent = duration_days is None

    return UserBan(
        ban_id=uuid4(),
        user_id=user_id,
        reason=reason,
        banned_by=banned_by,
        is_permanent=is_permanent,
        expires_at=None if is_permanent else now + timedelta(days=duration_days),
        is_active=True,
        created_at=now,
    )


def create_banned_term(
    term: str,
    severity: Severity,
    replacement: str | None = None,
    created_by: UUID | None = None,
) -> BannedTerm:
    """Create a banned term, normalized to lowercase."""
    return BannedTerm(
        term=term.strip().lower(),
        severity=severity,
        replacement=replacement,
        created_by=created_by,
        created_at=datetime.now(UTC),
    )
