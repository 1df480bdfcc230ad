# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Notification service layer.

Business logic for:
- Creating notifications for replies, reactions, pins and moderation
- Listing user notifications with pagination
- Marking notifications as read and tracking unread counts
- Deleting notifications
- Per-user settings that mute notification types

Users are never notified about their own actions.
"""

import json
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from redis.exceptions import RedisError

from chapterhub.core.redis import notification_channel

from .models import (
    PREFERENCE_FIELDS,
    Notification,
    NotificationSettings,
    NotificationType,
    create_notification,
    preview,
)
from .schemas import (
    NotificationListResponse,
    NotificationResponse,
    decode_cursor,
    encode_cursor,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from chapterhub.comments.models import Comment


logger = structlog.get_logger(__name__)

REACTION_EMOJI = {
    "like": "👍",
    "dislike": "👎",
    "love": "❤️",
    "laugh": "😂",
    "angry": "😠",
    "sad": "😢",
}


class NotificationService:
    """Service for notification management."""

    def __init__(self, session: "Session", keyspace: str, redis: "Redis | None" = None):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (user_id, notification_id, type, title, message, actor_id, actor_name,
             actor_avatar, comment_id, chapter_id, manga_id, reference_url,
             is_read, read_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_notifications = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ?
            ORDER BY created_at DESC
            LIMIT ?
        """)

        self._get_notifications_cursor = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ? AND created_at < ?
            ORDER BY created_at DESC
            LIMIT ?
        """)

        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = true, read_at = ?
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)

        self._incr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count + 1
            WHERE user_id = ?
        """)

        self._decr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count - ?
            WHERE user_id = ?
        """)

        self._get_unread_count = self.session.prepare(f"""
            SELECT count FROM {self.keyspace}.notification_unread_counts
            WHERE user_id = ?
        """)

        self._delete_notification = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.notifications
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)

        self._get_settings = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notification_settings
            WHERE user_id = ?
        """)

        self._upsert_settings = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notification_settings
            (user_id, comment_replies, comment_reactions, comment_mentions,
             comment_moderations, email_notifications, push_notifications,
             updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Notification Creation
    # ==========================================================================

    async def create_notification(
        self, notification: Notification
    ) -> Notification | None:
        """Store a notification and push it to the user's channel.

        Returns None when the recipient turned this type off.
        """
        preferences = await self.get_preferences(notification.user_id)
        if not preferences.allows(notification.type):
            logger.debug(
                "notification_muted",
                notification_type=notification.type.value,
                recipient_id=str(notification.user_id),
            )
            return None

        await self.session.aexecute(
            self._insert_notification,
            [
                notification.user_id,
                notification.notification_id,
                notification.type.value,
                notification.title,
                notification.message,
                notification.actor_id,
                notification.actor_name,
                notification.actor_avatar,
                notification.comment_id,
                notification.chapter_id,
                notification.manga_id,
                notification.reference_url,
                notification.is_read,
                notification.read_at,
                notification.created_at,
            ],
        )
        await self.session.aexecute(self._incr_unread, [notification.user_id])

        await self._invalidate_cache(notification.user_id)
        await self._publish_notification(notification)

        logger.info(
            "notification_created",
            notification_type=notification.type.value,
            recipient_id=str(notification.user_id),
        )
        return notification

    async def _publish_notification(self, notification: Notification) -> None:
        """Publish notification to Redis Pub/Sub for real-time delivery."""
        if not self.redis:
            return

        message = {
            "type": "notification",
            "data": NotificationResponse.from_notification(notification).model_dump(
                mode="json"
            ),
        }

        # Real-time delivery is best effort; the row is already stored
        try:
            await self.redis.publish(
                notification_channel(str(notification.user_id)), json.dumps(message)
            )
        except RedisError as e:
            logger.warning("notification_publish_failed", error=str(e))

    async def notify_reply(
        self,
        parent: "Comment",
        reply: "Comment",
    ) -> Notification | None:
        """Tell the parent's author about a reply. Skips self-replies."""
        if parent.author_id == reply.author_id:
            return None

        notification = create_notification(
            user_id=parent.author_id,
            notification_type=NotificationType.COMMENT_REPLY,
            title=f"{reply.author_name} replied to your comment",
            message=preview(reply.content),
            actor_id=reply.author_id,
            actor_name=reply.author_name,
            actor_avatar=reply.author_avatar,
            comment=reply,
        )
        return await self.create_notification(notification)

    async def notify_reaction(
        self,
        comment: "Comment",
        reactor_id: UUID,
        reactor_name: str,
        reaction_type: str,
        reactor_avatar: str | None = None,
    ) -> Notification | None:
        """Tell the author about a reaction. Skips reactions to own comments."""
        if comment.author_id == reactor_id:
            return None

        emoji = REACTION_EMOJI.get(reaction_type, "👍")
        notification = create_notification(
            user_id=comment.author_id,
            notification_type=NotificationType.COMMENT_REACTION,
            title=f"{reactor_name} reacted {emoji} to your comment",
            message=preview(comment.content),
            actor_id=reactor_id,
            actor_name=reactor_name,
            actor_avatar=reactor_avatar,
            comment=comment,
        )
        return await self.create_notification(notification)

    async def notify_pinned(
        self,
        comment: "Comment",
        moderator_id: UUID,
        moderator_name: str,
    ) -> Notification | None:
        """Tell the author their comment was pinned."""
        if comment.author_id == moderator_id:
            return None

        notification = create_notification(
            user_id=comment.author_id,
            notification_type=NotificationType.COMMENT_PINNED,
            title="Your comment was pinned",
            message=preview(comment.content),
            actor_id=moderator_id,
            actor_name=moderator_name,
            comment=comment,
        )
        return await self.create_notification(notification)

    async def notify_moderation(
        self,
        comment: "Comment",
        moderator_id: UUID,
        action: str,
        reason: str | None = None,
        from_report: bool = False,
    ) -> Notification | None:
        """Tell the author a moderator acted on their comment."""
        if comment.author_id == moderator_id:
            return None

        titles = {
            "hide": "Your comment was hidden by a moderator",
            "delete": "Your comment was removed by a moderator",
            "ban": "You have been banned from commenting",
        }
        notification = create_notification(
            user_id=comment.author_id,
            notification_type=(
                NotificationType.COMMENT_REPORTED
                if from_report
                else NotificationType.COMMENT_MODERATED
            ),
            title=titles.get(action, "A moderator reviewed your comment"),
            message=reason or preview(comment.content),
            actor_id=moderator_id,
            comment=comment,
        )
        return await self.create_notification(notification)

    # ==========================================================================
    # Notification Reading
    # ==========================================================================

    async def get_notifications(
        self,
        user_id: UUID,
        limit: int = 20,
        cursor: str | None = None,
        unread_only: bool = False,
    ) -> NotificationListResponse:
        """Get notifications for a user with pagination."""
        if cursor:
            created_at, _ = decode_cursor(cursor)
            rows = await self.session.aexecute(
                self._get_notifications_cursor,
                [user_id, created_at, limit + 1],
            )
        else:
            rows = await self.session.aexecute(
                self._get_notifications,
                [user_id, limit + 1],
            )

        notifications = [
            Notification.from_row(row)
            for row in rows
            if not (unread_only and row.is_read)
        ]

        has_more = len(notifications) > limit
        if has_more:
            notifications = notifications[:limit]

        next_cursor = None
        if has_more and notifications:
            last = notifications[-1]
            next_cursor = encode_cursor(last.created_at, last.notification_id)

        return NotificationListResponse(
            items=[NotificationResponse.from_notification(n) for n in notifications],
            unread_count=await self.get_unread_count(user_id),
            has_more=has_more,
            next_cursor=next_cursor,
        )

    async def get_unread_count(self, user_id: UUID) -> int:
        """Get unread notification count for user."""
        key = f"notifications:unread:{user_id}"
        if self.redis:
            try:
                cached = await self.redis.get(key)
            except RedisError as e:
                logger.warning("cache_read_failed", key=key, error=str(e))
                cached = None
            if cached:
                return int(cached)

        result = await self.session.aexecute(self._get_unread_count, [user_id])
        row = next(iter(result), None)
        count = max(row.count, 0) if row and row.count else 0

        if self.redis:
            try:
                await self.redis.setex(key, 300, str(count))
            except RedisError as e:
                logger.warning("cache_write_failed", key=key, error=str(e))

        return count

    # ==========================================================================
    # Mark as Read
    # ==========================================================================

    async def mark_as_read(self, user_id: UUID, notification_ids: list[UUID]) -> int:
        """Mark specific notifications as read.

        Returns count of notifications marked as read.
        """
        wanted = set(notification_ids)
        return await self._mark_rows(
            user_id, lambda row: row.notification_id in wanted
        )

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark all notifications as read for user."""
        return await self._mark_rows(user_id, lambda _row: True)

    async def _mark_rows(self, user_id: UUID, predicate) -> int:
        now = datetime.now(UTC)
        marked = 0

        rows = await self.session.aexecute(self._get_notifications, [user_id, 1000])
        for row in rows:
            if row.is_read or not predicate(row):
                continue
            await self.session.aexecute(
                self._mark_read,
                [now, user_id, row.created_at, row.notification_id],
            )
            marked += 1

        if marked > 0:
            await self.session.aexecute(self._decr_unread, [marked, user_id])
            await self._invalidate_cache(user_id)

        return marked

    # ==========================================================================
    # Deletion
    # ==========================================================================

    async def delete_notification(self, user_id: UUID, notification_id: UUID) -> bool:
        """Delete one of the user's notifications.

        Returns False when the user has no such notification.
        """
        rows = await self.session.aexecute(self._get_notifications, [user_id, 1000])
        row = next((r for r in rows if r.notification_id == notification_id), None)
        if row is None:
            return False

        await self.session.aexecute(
            self._delete_notification,
            [user_id, row.created_at, notification_id],
        )
        if not row.is_read:
            await self.session.aexecute(self._decr_unread, [1, user_id])
            await self._invalidate_cache(user_id)

        logger.info("notification_deleted", notification_id=str(notification_id))
        return True

    # ==========================================================================
    # Preferences
    # ==========================================================================

    async def get_preferences(self, user_id: UUID) -> NotificationSettings:
        """The user's notification settings, or the defaults."""
        result = await self.session.aexecute(self._get_settings, [user_id])
        row = next(iter(result), None)
        if row is None:
            return NotificationSettings(user_id=user_id)
        return NotificationSettings.from_row(row)

    async def update_preferences(
        self, user_id: UUID, changes: dict[str, bool]
    ) -> NotificationSettings:
        """Merge changed flags into the stored settings.

        Raises:
            ValueError: Unknown setting name
        """
        unknown = set(changes) - set(PREFERENCE_FIELDS)
        if unknown:
            msg = f"Unknown notification settings: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        current = await self.get_preferences(user_id)
        updated = replace(current, **changes, updated_at=datetime.now(UTC))
        await self.session.aexecute(
            self._upsert_settings,
            [
                user_id,
                *(getattr(updated, name) for name in PREFERENCE_FIELDS),
                updated.updated_at,
            ],
        )

        logger.info("notification_settings_updated", changed=sorted(changes))
        return updated

    # ==========================================================================
    # Cache Management
    # ==========================================================================

    async def _invalidate_cache(self, user_id: UUID) -> None:
        """Invalidate notification cache for user."""
        if not self.redis:
            return

        key = f"notifications:unread:{user_id}"
        try:
            await self.redis.delete(key)
        except RedisError as e:
            logger.warning("cache_invalidate_failed", key=key, error=str(e))
