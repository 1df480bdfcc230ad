"""Database models for comment notifications.

Notification types:
- COMMENT_REPLY: someone replied to the user's comment
- COMMENT_REACTION: someone reacted to the user's comment
- COMMENT_PINNED: a moderator pinned the user's comment
- COMMENT_REPORTED: a report against the user's comment was acted on
- COMMENT_MODERATED: a moderator hid or removed the user's comment
"""

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


NOTIFICATION_PREVIEW_MAX_LENGTH = 200


class NotificationType(str, Enum):
    """Types of notifications."""

    COMMENT_REPLY = "comment_reply"
    COMMENT_REACTION = "comment_reaction"
    COMMENT_PINNED = "comment_pinned"
    COMMENT_REPORTED = "comment_reported"
    COMMENT_MODERATED = "comment_moderated"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partitioned by user, newest first
NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    notification_id UUID,
    type TEXT,
    title TEXT,
    message TEXT,
    actor_id UUID,
    actor_name TEXT,
    actor_avatar TEXT,
    comment_id UUID,
    chapter_id UUID,
    manga_id UUID,
    reference_url TEXT,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), created_at, notification_id)
) WITH CLUSTERING ORDER BY (created_at DESC, notification_id ASC)
"""

UNREAD_COUNT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notification_unread_counts (
    user_id UUID PRIMARY KEY,
    count COUNTER
)
"""

# One row per user; a missing row means the defaults
NOTIFICATION_SETTINGS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notification_settings (
    user_id UUID PRIMARY KEY,
    comment_replies BOOLEAN,
    comment_reactions BOOLEAN,
    comment_mentions BOOLEAN,
    comment_moderations BOOLEAN,
    email_notifications BOOLEAN,
    push_notifications BOOLEAN,
    updated_at TIMESTAMP
)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    UNREAD_COUNT_TABLE_CQL,
    NOTIFICATION_SETTINGS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Notification entity."""

    notification_id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    actor_id: UUID | None
    actor_name: str | None
    actor_avatar: str | None
    comment_id: UUID | None
    chapter_id: UUID | None
    manga_id: UUID | None
    reference_url: str | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=NotificationType(row.type),
            title=row.title,
            message=row.message,
            actor_id=row.actor_id,
            actor_name=row.actor_name,
            actor_avatar=row.actor_avatar,
            comment_id=row.comment_id,
            chapter_id=row.chapter_id,
            manga_id=row.manga_id,
            reference_url=row.reference_url,
            is_read=row.is_read or False,
            read_at=row.read_at,
            created_at=row.created_at,
        )


@dataclass
class NotificationSettings:
    """Which comment notifications a user wants.

    Email and push flags are stored for external delivery channels; this
    service only writes in-app notifications.
    """

    user_id: UUID
    comment_replies: bool = True
    comment_reactions: bool = True
    comment_mentions: bool = True
    comment_moderations: bool = True
    email_notifications: bool = False
    push_notifications: bool = False
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "NotificationSettings":
        """Create settings from Cassandra row, defaulting unset columns."""
        defaults = cls(user_id=row.user_id)
        values = {
            name: getattr(row, name)
            for name in PREFERENCE_FIELDS
            if getattr(row, name, None) is not None
        }
        updated_at = row.updated_at
        if updated_at is not None and updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=UTC)
        return replace(defaults, **values, updated_at=updated_at)

    def allows(self, notification_type: NotificationType) -> bool:
        """Whether a notification of this type should be sent."""
        return getattr(self, SETTING_FOR_TYPE[notification_type])


PREFERENCE_FIELDS = (
    "comment_replies",
    "comment_reactions",
    "comment_mentions",
    "comment_moderations",
    "email_notifications",
    "push_notifications",
)

# Pins, report outcomes and moderator actions share one switch
SETTING_FOR_TYPE = {
    NotificationType.COMMENT_REPLY: "comment_replies",
    NotificationType.COMMENT_REACTION: "comment_reactions",
    NotificationType.COMMENT_PINNED: "comment_moderations",
    NotificationType.COMMENT_REPORTED: "comment_moderations",
    NotificationType.COMMENT_MODERATED: "comment_moderations",
}


# ==============================================================================
# Factory Functions
# ==============================================================================


def comment_url(manga_id: UUID, chapter_id: UUID, comment_id: UUID) -> str:
    """Reader URL anchored at a comment."""
    return f"/manga/{manga_id}/chapter/{chapter_id}#comment-{comment_id}"


def preview(text: str) -> str:
    return text[:NOTIFICATION_PREVIEW_MAX_LENGTH]


def create_notification(
    user_id: UUID,
    notification_type: NotificationType,
    title: str,
    message: str,
    actor_id: UUID | None = None,
    actor_name: str | None = None,
    actor_avatar: str | None = None,
    comment: Any | None = None,
) -> Notification:
    """Create a new notification, optionally pointing at a comment."""
    return Notification(
        notification_id=uuid4(),
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        actor_id=actor_id,
        actor_name=actor_name,
        actor_avatar=actor_avatar,
        comment_id=comment.comment_id if comment else None,
        chapter_id=comment.chapter_id if comment else None,
        manga_id=comment.manga_id if comment else None,
        reference_url=(
            comment_url(comment.manga_id, comment.chapter_id, comment.comment_id)
            if comment
            else None
        ),
        is_read=False,
        read_at=None,
        created_at=datetime.now(UTC),
    )
