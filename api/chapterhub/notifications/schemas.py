"""Request and response models for comment notifications.

Listing is newest first with an opaque cursor built from the last item's
timestamp and id.
"""

import base64
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from chapterhub.notifications.models import (
    Notification,
    NotificationSettings,
    NotificationType,
)


class NotificationActor(BaseModel):
    """Reader or moderator whose action produced the notification."""

    id: UUID
    name: str | None = None
    avatar: str | None = None


class CommentReference(BaseModel):
    """Where the comment behind a notification lives in the reader."""

    comment_id: UUID
    chapter_id: UUID | None = None
    manga_id: UUID | None = None
    url: str | None = Field(None, description="Reader link anchored at the comment")


class NotificationResponse(BaseModel):
    """A reply, reaction, pin or moderation notice."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: NotificationType
    title: str = Field(description="Headline, e.g. who replied or reacted")
    message: str = Field(description="Comment preview or moderator reason")
    actor: NotificationActor | None = None
    reference: CommentReference | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        actor = None
        if notification.actor_id:
            actor = NotificationActor(
                id=notification.actor_id,
                name=notification.actor_name,
                avatar=notification.actor_avatar,
            )

        reference = None
        if notification.comment_id:
            reference = CommentReference(
                comment_id=notification.comment_id,
                chapter_id=notification.chapter_id,
                manga_id=notification.manga_id,
                url=notification.reference_url,
            )

        return cls(
            id=notification.notification_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            actor=actor,
            reference=reference,
            is_read=notification.is_read,
            read_at=notification.read_at,
            created_at=notification.created_at,
        )


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    unread_count: int
    has_more: bool
    next_cursor: str | None = Field(
        None, description="Pass back as ``cursor`` for older notifications"
    )


class UnreadCountResponse(BaseModel):
    count: int = Field(description="Unread comment notifications")


class MarkReadResponse(BaseModel):
    marked_count: int
    unread_count: int = Field(description="Unread count after the update")


class MarkReadRequest(BaseModel):
    notification_ids: list[UUID] = Field(min_length=1)


class NotificationSettingsResponse(BaseModel):
    """Which comment activity the reader is notified about."""

    model_config = ConfigDict(from_attributes=True)

    comment_replies: bool
    comment_reactions: bool
    comment_mentions: bool
    comment_moderations: bool = Field(
        description="Pins, report outcomes and moderator actions"
    )
    email_notifications: bool
    push_notifications: bool
    updated_at: datetime | None = None

    @classmethod
    def from_settings(
        cls, settings: NotificationSettings
    ) -> "NotificationSettingsResponse":
        return cls.model_validate(settings)


class NotificationSettingsUpdate(BaseModel):
    """Partial update; omitted flags keep their stored value."""

    model_config = ConfigDict(extra="forbid")

    comment_replies: bool | None = None
    comment_reactions: bool | None = None
    comment_mentions: bool | None = None
    comment_moderations: bool | None = None
    email_notifications: bool | None = None
    push_notifications: bool | None = None

    def changes(self) -> dict[str, bool]:
        return self.model_dump(exclude_none=True)


def encode_cursor(created_at: datetime, notification_id: UUID) -> str:
    raw = f"{created_at.isoformat()}|{notification_id}"
    return base64.urlsafe_b64encode(raw.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Split a listing cursor back into timestamp and id.

    Raises:
        ValueError: The cursor was not produced by ``encode_cursor``
    """
    try:
        created_at, notification_id = (
            base64.urlsafe_b64decode(cursor.encode()).decode().split("|")
        )
        return datetime.fromisoformat(created_at), UUID(notification_id)
    except (ValueError, UnicodeDecodeError) as e:
        msg = f"Invalid cursor: {e}"
        raise ValueError(msg) from e
