"""Tests for NotificationService."""

import json
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session
from redis.exceptions import ConnectionError as RedisConnectionError

from chapterhub.notifications.models import NotificationSettings, NotificationType
from chapterhub.notifications.service import NotificationService

from tests.helpers import make_comment


@pytest.fixture
def mock_session():
    """Mock Cassandra session; prepared statements are their CQL text."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: cql)
    session.aexecute = AsyncMock(return_value=[])
    return session


@pytest.fixture
def mock_redis():
    redis_mock = AsyncMock()
    redis_mock.get = AsyncMock(return_value=None)
    return redis_mock


@pytest.fixture
def service(mock_session, mock_redis) -> NotificationService:
    return NotificationService(mock_session, "test_keyspace", redis=mock_redis)


def notification_row(user_id, minutes=0, is_read=False):
    return SimpleNamespace(
        notification_id=uuid4(),
        user_id=user_id,
        type="comment_reply",
        title="Ren replied to your comment",
        message="Agreed!",
        actor_id=uuid4(),
        actor_name="Ren",
        actor_avatar=None,
        comment_id=uuid4(),
        chapter_id=uuid4(),
        manga_id=uuid4(),
        reference_url=None,
        is_read=is_read,
        read_at=None,
        created_at=datetime.now(UTC) - timedelta(minutes=minutes),
    )


def settings_row(user_id, **flags):
    values = dict.fromkeys(
        [
            "comment_replies",
            "comment_reactions",
            "comment_mentions",
            "comment_moderations",
            "email_notifications",
            "push_notifications",
        ]
    )
    values.update(flags)
    return SimpleNamespace(user_id=user_id, updated_at=None, **values)


def answer_settings(mock_session, row):
    """Serve ``row`` for settings lookups and nothing for other queries."""

    async def aexecute(statement, params=None):
        if "FROM test_keyspace.notification_settings" in statement:
            return [row]
        return []

    mock_session.aexecute.side_effect = aexecute


def executed(mock_session, fragment):
    return [
        c for c in mock_session.aexecute.await_args_list if fragment in c.args[0]
    ]


class TestNotify:
    """Tests for the notify_* helpers."""

    @pytest.mark.asyncio
    async def test_reply_notifies_parent_author(
        self, service, mock_session, mock_redis
    ):
        parent = make_comment(uuid4(), "Theory time")
        reply = make_comment(
            parent.chapter_id,
            "Good theory",
            parent_id=parent.comment_id,
            author_name="Ren",
        )

        notification = await service.notify_reply(parent, reply)

        assert notification.user_id == parent.author_id
        assert notification.type == NotificationType.COMMENT_REPLY
        assert notification.title == "Ren replied to your comment"
        assert notification.comment_id == reply.comment_id
        assert f"#comment-{reply.comment_id}" in notification.reference_url
        inserts = executed(mock_session, "INSERT INTO test_keyspace.notifications")
        assert len(inserts) == 1
        assert len(executed(mock_session, "count = count + 1")) == 1
        channel, payload = mock_redis.publish.await_args.args
        assert str(parent.author_id) in channel
        assert json.loads(payload)["type"] == "notification"

    @pytest.mark.asyncio
    async def test_self_reply_is_skipped(self, service, mock_session):
        parent = make_comment(uuid4())
        reply = make_comment(
            parent.chapter_id, parent_id=parent.comment_id, author_id=parent.author_id
        )

        assert await service.notify_reply(parent, reply) is None
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reaction_title_has_emoji(self, service):
        comment = make_comment(uuid4())

        notification = await service.notify_reaction(comment, uuid4(), "Aoi", "love")

        assert notification.title == "Aoi reacted ❤️ to your comment"
        assert notification.type == NotificationType.COMMENT_REACTION

    @pytest.mark.asyncio
    async def test_own_reaction_is_skipped(self, service):
        comment = make_comment(uuid4())

        result = await service.notify_reaction(
            comment, comment.author_id, "Me", "like"
        )

        assert result is None

    @pytest.mark.asyncio
    async def test_pinned(self, service):
        comment = make_comment(uuid4())

        notification = await service.notify_pinned(comment, uuid4(), "Leader")

        assert notification.type == NotificationType.COMMENT_PINNED
        assert notification.actor_name == "Leader"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "from_report,expected",
        [
            (False, NotificationType.COMMENT_MODERATED),
            (True, NotificationType.COMMENT_REPORTED),
        ],
    )
    async def test_moderation_type(self, service, from_report, expected):
        comment = make_comment(uuid4())

        notification = await service.notify_moderation(
            comment, uuid4(), "hide", "Off-topic", from_report=from_report
        )

        assert notification.type == expected
        assert notification.title == "Your comment was hidden by a moderator"
        assert notification.message == "Off-topic"

    @pytest.mark.asyncio
    async def test_publish_failure_keeps_notification(
        self, service, mock_session, mock_redis
    ):
        mock_redis.publish.side_effect = RedisConnectionError("down")

        notification = await service.notify_pinned(make_comment(uuid4()), uuid4(), "L")

        assert notification is not None
        assert len(executed(mock_session, "INSERT INTO")) == 1


class TestRead:
    """Tests for listing and unread counts."""

    @pytest.mark.asyncio
    async def test_list_returns_next_cursor(self, service, mock_session, mock_redis):
        user_id = uuid4()
        rows = [notification_row(user_id, minutes=i) for i in range(3)]
        mock_session.aexecute.side_effect = [rows, [SimpleNamespace(count=3)]]

        result = await service.get_notifications(user_id, limit=2)

        assert len(result.items) == 2
        assert result.has_more
        assert result.next_cursor is not None
        assert result.unread_count == 3
        mock_redis.setex.assert_awaited_once_with(
            f"notifications:unread:{user_id}", 300, "3"
        )

    @pytest.mark.asyncio
    async def test_unread_only_filters(self, service, mock_session):
        user_id = uuid4()
        rows = [
            notification_row(user_id, minutes=0, is_read=True),
            notification_row(user_id, minutes=1),
        ]
        mock_session.aexecute.side_effect = [rows, [SimpleNamespace(count=1)]]

        result = await service.get_notifications(user_id, unread_only=True)

        assert len(result.items) == 1
        assert not result.items[0].is_read
        assert not result.has_more

    @pytest.mark.asyncio
    async def test_unread_count_from_cache(self, service, mock_session, mock_redis):
        mock_redis.get.return_value = "7"

        assert await service.get_unread_count(uuid4()) == 7
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_negative_counter_reads_as_zero(self, service, mock_session):
        mock_session.aexecute.return_value = [SimpleNamespace(count=-2)]

        assert await service.get_unread_count(uuid4()) == 0


class TestMarkRead:
    """Tests for marking notifications read."""

    @pytest.mark.asyncio
    async def test_mark_selected(self, service, mock_session, mock_redis):
        user_id = uuid4()
        rows = [notification_row(user_id, minutes=i) for i in range(3)]
        mock_session.aexecute.return_value = rows

        marked = await service.mark_as_read(user_id, [rows[1].notification_id])

        assert marked == 1
        assert len(executed(mock_session, "SET is_read = true")) == 1
        decrement = executed(mock_session, "count = count - ?")
        assert decrement[0].args[1] == [1, user_id]
        mock_redis.delete.assert_awaited_once_with(f"notifications:unread:{user_id}")

    @pytest.mark.asyncio
    async def test_mark_all_skips_read_rows(self, service, mock_session):
        user_id = uuid4()
        rows = [
            notification_row(user_id, minutes=0, is_read=True),
            notification_row(user_id, minutes=1),
            notification_row(user_id, minutes=2),
        ]
        mock_session.aexecute.return_value = rows

        assert await service.mark_all_as_read(user_id) == 2

    @pytest.mark.asyncio
    async def test_nothing_to_mark(self, service, mock_session, mock_redis):
        mock_session.aexecute.return_value = []

        assert await service.mark_all_as_read(uuid4()) == 0
        mock_redis.delete.assert_not_awaited()


class TestPreferences:
    """Tests for per-user notification settings."""

    @pytest.mark.asyncio
    async def test_defaults_without_stored_row(self, service):
        user_id = uuid4()

        preferences = await service.get_preferences(user_id)

        assert preferences == NotificationSettings(user_id=user_id)
        assert preferences.comment_replies
        assert preferences.comment_moderations
        assert not preferences.email_notifications
        assert not preferences.push_notifications

    @pytest.mark.asyncio
    async def test_unset_columns_fall_back_to_defaults(self, service, mock_session):
        user_id = uuid4()
        answer_settings(mock_session, settings_row(user_id, comment_reactions=False))

        preferences = await service.get_preferences(user_id)

        assert not preferences.comment_reactions
        assert preferences.comment_replies
        assert not preferences.push_notifications

    @pytest.mark.asyncio
    async def test_muted_replies_are_not_stored(
        self, service, mock_session, mock_redis
    ):
        parent = make_comment(uuid4())
        reply = make_comment(parent.chapter_id, parent_id=parent.comment_id)
        answer_settings(
            mock_session, settings_row(parent.author_id, comment_replies=False)
        )

        assert await service.notify_reply(parent, reply) is None
        assert executed(mock_session, "INSERT INTO test_keyspace.notifications") == []
        mock_redis.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_muting_replies_keeps_reactions(self, service, mock_session):
        comment = make_comment(uuid4())
        answer_settings(
            mock_session, settings_row(comment.author_id, comment_replies=False)
        )

        notification = await service.notify_reaction(comment, uuid4(), "Ren", "laugh")

        assert notification is not None
        inserts = executed(mock_session, "INSERT INTO test_keyspace.notifications")
        assert len(inserts) == 1

    @pytest.mark.asyncio
    async def test_moderation_switch_covers_pins_and_reports(
        self, service, mock_session
    ):
        comment = make_comment(uuid4())
        answer_settings(
            mock_session, settings_row(comment.author_id, comment_moderations=False)
        )

        assert await service.notify_pinned(comment, uuid4(), "Leader") is None
        assert (
            await service.notify_moderation(
                comment, uuid4(), "hide", from_report=True
            )
            is None
        )

    @pytest.mark.asyncio
    async def test_update_merges_into_stored(self, service, mock_session):
        user_id = uuid4()
        answer_settings(mock_session, settings_row(user_id, comment_reactions=False))

        updated = await service.update_preferences(
            user_id, {"push_notifications": True}
        )

        assert updated.push_notifications
        assert not updated.comment_reactions
        assert updated.updated_at is not None
        upsert = executed(
            mock_session, "INSERT INTO test_keyspace.notification_settings"
        )
        assert upsert[0].args[1] == [
            user_id,
            True,
            False,
            True,
            True,
            False,
            True,
            updated.updated_at,
        ]

    @pytest.mark.asyncio
    async def test_unknown_setting_is_rejected(self, service, mock_session):
        with pytest.raises(ValueError, match="newsletter"):
            await service.update_preferences(uuid4(), {"newsletter": True})

        mock_session.aexecute.assert_not_awaited()


class TestDelete:
    """Tests for deleting notifications."""

    @pytest.mark.asyncio
    async def test_delete_unread_lowers_count(self, service, mock_session, mock_redis):
        user_id = uuid4()
        rows = [notification_row(user_id, minutes=i) for i in range(2)]
        mock_session.aexecute.return_value = rows

        assert await service.delete_notification(user_id, rows[1].notification_id)

        deletes = executed(mock_session, "DELETE FROM test_keyspace.notifications")
        assert deletes[0].args[1] == [
            user_id,
            rows[1].created_at,
            rows[1].notification_id,
        ]
        decrement = executed(mock_session, "count = count - ?")
        assert decrement[0].args[1] == [1, user_id]
        mock_redis.delete.assert_awaited_once_with(f"notifications:unread:{user_id}")

    @pytest.mark.asyncio
    async def test_delete_read_keeps_count(self, service, mock_session):
        user_id = uuid4()
        row = notification_row(user_id, is_read=True)
        mock_session.aexecute.return_value = [row]

        assert await service.delete_notification(user_id, row.notification_id)
        assert executed(mock_session, "count = count - ?") == []

    @pytest.mark.asyncio
    async def test_delete_unknown(self, service, mock_session):
        user_id = uuid4()
        mock_session.aexecute.return_value = [notification_row(user_id)]

        assert not await service.delete_notification(user_id, uuid4())
        assert executed(mock_session, "DELETE FROM") == []
