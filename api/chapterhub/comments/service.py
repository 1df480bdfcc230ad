"""Comment service layer.

Business logic for:
- Submitting, editing and soft-deleting comments
- Pinning and hiding (moderators)
- Paged listing with threaded reply counts
- Infinite-scroll feeds over those pages
- Reaction toggling and summaries
- Per-reader comment bookmarks
- Redis caches and the per-user spam history

Every mutation invalidates the cached lists it touches; cached lists are
never patched in place.
"""

import json
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from redis.exceptions import RedisError

from chapterhub.auth.permissions import Capability, is_moderator
from chapterhub.config.settings import Settings, get_settings

from .exceptions import (
    CommentNotFoundError,
    ContentRejectedError,
    InvalidCommentError,
    PermissionDeniedError,
    UserBannedError,
)
from .models import (
    BannedTerm,
    BookmarkSort,
    Comment,
    ReactionType,
    Severity,
    create_bookmark,
    create_comment,
    create_reaction,
)
from .moderation import (
    BLOCKING_MESSAGES,
    ModerationResult,
    clean_content,
    moderate,
    normalize,
    validate_structure,
)
from .pagination import CommentFeed
from .reactions import (
    ReactionChange,
    ReactionSummary,
    aggregate_reactions,
    resolve_reaction_change,
)
from .schemas import (
    BookmarkListResponse,
    BookmarkResponse,
    CommentListResponse,
    CommentResponse,
    ReplyListResponse,
)
from .threads import SortMode, build_threads


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from chapterhub.auth.schemas import Viewer
    from chapterhub.notifications.service import NotificationService

    from .store import CommentStore


logger = structlog.get_logger(__name__)

BANNED_TERMS_KEY = "banned_terms"
REACTION_NAMES = frozenset(t.value for t in ReactionType)


def _decode(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


@dataclass(frozen=True)
class SubmitResult:
    """A stored comment and the moderation verdict it passed."""

    comment: Comment
    moderation: ModerationResult


@dataclass(frozen=True)
class ReactionResult:
    change: ReactionChange
    summary: ReactionSummary


class SpamHistory:
    """Rolling buffer of a user's recent submissions, kept in Redis.

    Entries are normalized text, newest first. Without Redis the history is
    always empty, so only in-text spam signals apply.
    """

    def __init__(self, redis: "Redis | None", size: int = 10, ttl: int = 3600):
        self.redis = redis
        self.size = size
        self.ttl = ttl

    @staticmethod
    def key(user_id: UUID) -> str:
        return f"spam_history:{user_id}"

    async def recent(self, user_id: UUID) -> list[str]:
        if not self.redis:
            return []

        try:
            entries = await self.redis.lrange(self.key(user_id), 0, self.size - 1)
        except RedisError as e:
            logger.warning("spam_history_read_failed", error=str(e))
            return []
        return [_decode(entry) for entry in entries]

    async def push(self, user_id: UUID, content: str) -> None:
        if not self.redis:
            return

        key = self.key(user_id)
        try:
            await self.redis.lpush(key, normalize(content))
            await self.redis.ltrim(key, 0, self.size - 1)
            await self.redis.expire(key, self.ttl)
        except RedisError as e:
            logger.warning("spam_history_write_failed", error=str(e))


class CommentService:
    """Service for chapter comments and reactions."""

    def __init__(
        self,
        store: "CommentStore",
        redis: "Redis | None" = None,
        settings: Settings | None = None,
        notifications: "NotificationService | None" = None,
    ):
        """Initialize with the store, optional Redis and notification service."""
        self.store = store
        self.redis = redis
        self.settings = settings or get_settings()
        self.notifications = notifications
        self.spam_history = SpamHistory(
            redis,
            size=self.settings.comments_spam_history_size,
            ttl=self.settings.comments_spam_history_ttl_seconds,
        )

    # ==========================================================================
    # Moderation
    # ==========================================================================

    async def banned_terms(self) -> list[BannedTerm]:
        """Admin-managed banned terms, cached in Redis."""
        if self.redis:
            try:
                cached = await self.redis.get(BANNED_TERMS_KEY)
            except RedisError as e:
                logger.warning("cache_read_failed", key=BANNED_TERMS_KEY, error=str(e))
                cached = None
            if cached:
                return [_term_from_cache(item) for item in json.loads(cached)]

        terms = await self.store.list_banned_terms()

        if self.redis:
            payload = [
                {
                    "term": t.term,
                    "severity": t.severity.value,
                    "replacement": t.replacement,
                    "created_by": t.created_by,
                    "created_at": t.created_at,
                }
                for t in terms
            ]
            await self._cache_set(
                BANNED_TERMS_KEY, json.dumps(payload, default=str)
            )

        return terms

    async def invalidate_banned_terms(self) -> None:
        await self._cache_delete(BANNED_TERMS_KEY)

    async def preview(
        self, content: str, viewer: "Viewer | None" = None
    ) -> ModerationResult:
        """Run the moderation filter without storing anything."""
        history = await self.spam_history.recent(viewer.id) if viewer else []
        return moderate(
            content,
            history=history,
            terms=await self.banned_terms(),
            max_length=self.settings.comments_max_length,
        )

    # ==========================================================================
    # Submit / Edit / Delete
    # ==========================================================================

    async def submit(
        self,
        viewer: "Viewer",
        chapter_id: UUID,
        manga_id: UUID,
        content: str,
        parent_id: UUID | None = None,
        is_spoiler: bool = False,
    ) -> SubmitResult:
        """Post a comment or a reply.

        Performs:
        - Moderation (a blocked verdict stops before any write)
        - Ban check
        - Parent validation: exists, not deleted, top-level, same chapter
        - Masking and escaping of the stored text
        - Spam history update, cache invalidation, reply notification
        """
        terms = await self.banned_terms()
        history = await self.spam_history.recent(viewer.id)
        verdict = moderate(
            content,
            history=history,
            terms=terms,
            max_length=self.settings.comments_max_length,
        )
        if not verdict.allowed:
            logger.info(
                "comment_rejected",
                reason=verdict.blocking_reason,
                chapter_id=str(chapter_id),
            )
            raise ContentRejectedError(
                verdict.blocking_reason, verdict.message, verdict.warnings
            )

        if await self.is_banned(viewer.id):
            raise UserBannedError

        parent = None
        if parent_id is not None:
            parent = await self.store.get_comment(parent_id)
            if parent is None or parent.is_deleted:
                raise CommentNotFoundError("Parent comment not found")
            if not parent.is_top_level:
                raise InvalidCommentError("Only top-level comments take replies")
            if parent.chapter_id != chapter_id:
                raise InvalidCommentError("Parent comment belongs to another chapter")

        comment = create_comment(
            chapter_id=chapter_id,
            manga_id=manga_id,
            author_id=viewer.id,
            author_name=viewer.display_name or "Reader",
            content=clean_content(content, terms),
            parent_id=parent_id,
            author_avatar=viewer.avatar_url,
            author_role=viewer.role,
            is_spoiler=is_spoiler,
        )
        await self.store.insert_comment(comment)

        await self.spam_history.push(viewer.id, content)
        await self.invalidate_cache(chapter_id, parent_id)

        logger.info(
            "comment_created",
            comment_id=str(comment.comment_id),
            chapter_id=str(chapter_id),
            is_reply=parent_id is not None,
            quality_score=verdict.quality_score,
        )

        if parent is not None and self.notifications:
            await self.send_notification(
                self.notifications.notify_reply(parent, comment)
            )

        return SubmitResult(comment=comment, moderation=verdict)

    async def edit(
        self,
        viewer: "Viewer",
        comment_id: UUID,
        content: str,
        is_spoiler: bool | None = None,
    ) -> Comment:
        """Edit a comment. Author or moderator only.

        Only structural validation applies; the stored text is masked and
        escaped like a new submission.
        """
        comment = await self._get_live_comment(comment_id)

        if comment.author_id != viewer.id and not viewer.can(
            Capability.MODERATE_COMMENTS
        ):
            raise PermissionDeniedError("You can only edit your own comments")

        check = validate_structure(content, self.settings.comments_max_length)
        if not check.is_valid:
            reason = check.errors[0]
            raise ContentRejectedError(
                reason, BLOCKING_MESSAGES[reason], check.warnings
            )

        await self.store.update_content(
            comment,
            clean_content(content, await self.banned_terms()),
            comment.is_spoiler if is_spoiler is None else is_spoiler,
        )
        await self.invalidate_cache(comment.chapter_id, comment.parent_id)

        logger.info("comment_edited", comment_id=str(comment_id))
        return comment

    async def delete(
        self,
        viewer: "Viewer",
        comment_id: UUID,
        reason: str | None = None,
    ) -> Comment:
        """Soft delete a comment. Deleting twice is a no-op."""
        comment = await self.store.get_comment(comment_id)
        if comment is None:
            raise CommentNotFoundError

        is_author = comment.author_id == viewer.id
        if not is_author and not (
            viewer.can(Capability.MODERATE_COMMENTS)
            or viewer.can(Capability.DELETE_COMMENTS)
        ):
            raise PermissionDeniedError("You can only delete your own comments")

        if comment.is_deleted:
            return comment

        await self.store.soft_delete(comment, viewer.id, reason)
        await self.invalidate_cache(comment.chapter_id, comment.parent_id)

        logger.info(
            "comment_deleted",
            comment_id=str(comment_id),
            by_moderator=not is_author,
        )

        if not is_author and self.notifications:
            await self.send_notification(
                self.notifications.notify_moderation(
                    comment, viewer.id, "delete", reason
                )
            )

        return comment

    async def pin(self, viewer: "Viewer", comment_id: UUID) -> Comment:
        return await self._set_pinned(viewer, comment_id, True)

    async def unpin(self, viewer: "Viewer", comment_id: UUID) -> Comment:
        return await self._set_pinned(viewer, comment_id, False)

    async def _set_pinned(
        self, viewer: "Viewer", comment_id: UUID, pinned: bool
    ) -> Comment:
        if not viewer.can(Capability.PIN_COMMENTS):
            raise PermissionDeniedError

        comment = await self._get_live_comment(comment_id)
        if not comment.is_top_level:
            raise InvalidCommentError("Only top-level comments can be pinned")

        if comment.is_pinned == pinned:
            return comment

        await self.store.set_pinned(comment, pinned)
        await self.invalidate_cache(comment.chapter_id)

        logger.info("comment_pinned", comment_id=str(comment_id), pinned=pinned)

        if pinned and self.notifications:
            await self.send_notification(
                self.notifications.notify_pinned(
                    comment, viewer.id, viewer.display_name or "Moderator"
                )
            )

        return comment

    async def set_hidden(
        self, viewer: "Viewer", comment_id: UUID, hidden: bool
    ) -> Comment:
        """Hide a comment from readers, or show it again."""
        if not viewer.can(Capability.MODERATE_COMMENTS):
            raise PermissionDeniedError

        comment = await self._get_live_comment(comment_id)
        return await self.apply_hidden(comment, hidden)

    async def apply_hidden(self, comment: Comment, hidden: bool) -> Comment:
        """Write the hidden flag. Callers check permissions."""
        if comment.is_hidden == hidden:
            return comment

        await self.store.set_hidden(comment, hidden)
        await self.invalidate_cache(comment.chapter_id, comment.parent_id)

        logger.info(
            "comment_visibility_changed",
            comment_id=str(comment.comment_id),
            hidden=hidden,
        )
        return comment

    # ==========================================================================
    # Read paths
    # ==========================================================================

    async def get_comment(
        self, comment_id: UUID, viewer: "Viewer | None" = None
    ) -> Comment:
        """Resolve a comment by id.

        Deleted comments still resolve (their content is masked in responses);
        hidden ones resolve for moderators only.
        """
        comment = await self.store.get_comment(comment_id)
        if comment is None or (comment.is_hidden and not _is_moderator(viewer)):
            raise CommentNotFoundError
        return comment

    async def get_comment_response(
        self, comment_id: UUID, viewer: "Viewer | None" = None
    ) -> CommentResponse:
        comment = await self.get_comment(comment_id, viewer)
        summary = await self.get_reaction_summary(
            comment_id, viewer.id if viewer else None
        )

        reply_count = 0
        if comment.is_top_level:
            replies = await self.store.list_replies(comment.chapter_id, comment_id)
            reply_count = len(_visible(replies, viewer))

        return CommentResponse.from_comment(comment, summary, reply_count)

    async def list_comments(
        self,
        chapter_id: UUID,
        viewer: "Viewer | None" = None,
        page: int = 0,
        sort: SortMode = SortMode.PINNED,
        page_size: int | None = None,
    ) -> CommentListResponse:
        """One page of top-level comments in the requested order.

        Replies are not included, only their count; see ``get_replies``.
        """
        page_size = page_size or self.settings.comments_page_size
        cacheable = (
            viewer is None
            and page == 0
            and page_size == self.settings.comments_page_size
        )

        if cacheable:
            cached = await self._get_cached_list(chapter_id, sort)
            if cached is not None:
                return cached

        rows = _visible(await self.store.list_chapter_comments(chapter_id), viewer)

        totals: dict[UUID, int] = {}
        if sort == SortMode.POPULAR:
            for row in rows:
                if row.is_top_level:
                    summary = await self.get_reaction_summary(row.comment_id)
                    totals[row.comment_id] = summary.total

        threads = build_threads(rows, sort, totals)
        start = page * page_size
        window = threads[start : start + page_size]

        items = []
        for thread in window:
            summary = await self.get_reaction_summary(
                thread.comment_id, viewer.id if viewer else None
            )
            items.append(
                CommentResponse.from_comment(
                    thread.comment, summary, thread.reply_count
                )
            )

        has_more = start + page_size < len(threads)
        response = CommentListResponse(
            items=items,
            total=len(threads),
            page=page,
            page_size=page_size,
            sort=sort,
            has_more=has_more,
            next_page=page + 1 if has_more else None,
        )

        if cacheable:
            await self._cache_list(chapter_id, sort, response)

        return response

    async def get_replies(
        self,
        comment_id: UUID,
        viewer: "Viewer | None" = None,
        limit: int | None = None,
    ) -> ReplyListResponse:
        """Replies of a top-level comment, oldest first, up to ``limit``.

        Asking again with a larger limit re-fetches the whole reply set.
        """
        limit = limit or self.settings.comments_replies_page_size

        parent = await self.store.get_comment(comment_id)
        if (
            parent is None
            or parent.is_deleted
            or (parent.is_hidden and not _is_moderator(viewer))
        ):
            raise CommentNotFoundError
        if not parent.is_top_level:
            raise InvalidCommentError("Replies belong to top-level comments")

        cacheable = viewer is None and limit == self.settings.comments_replies_page_size
        if cacheable:
            cached = await self._get_cached_replies(parent.chapter_id, comment_id)
            if cached is not None:
                return cached

        replies = _visible(
            await self.store.list_replies(parent.chapter_id, comment_id), viewer
        )
        replies.sort(key=lambda c: (c.created_at, c.comment_id))

        items = []
        for reply in replies[:limit]:
            summary = await self.get_reaction_summary(
                reply.comment_id, viewer.id if viewer else None
            )
            items.append(CommentResponse.from_comment(reply, summary))

        response = ReplyListResponse(
            parent_id=comment_id,
            items=items,
            total=len(replies),
            has_more=len(replies) > limit,
        )

        if cacheable:
            await self._cache_replies(parent.chapter_id, comment_id, response)

        return response

    def open_feed(
        self,
        chapter_id: UUID,
        viewer: "Viewer | None" = None,
        sort: SortMode = SortMode.PINNED,
        page_size: int | None = None,
    ) -> CommentFeed:
        """Infinite-scroll state over this chapter's pages and replies."""

        async def load_page(page: int) -> CommentListResponse:
            return await self.list_comments(
                chapter_id, viewer, page=page, sort=sort, page_size=page_size
            )

        async def load_replies(comment_id: UUID, limit: int) -> ReplyListResponse:
            return await self.get_replies(comment_id, viewer, limit=limit)

        return CommentFeed(
            load_page,
            load_replies,
            replies_page_size=self.settings.comments_replies_page_size,
        )

    # ==========================================================================
    # Reactions
    # ==========================================================================

    async def set_reaction(
        self,
        viewer: "Viewer",
        comment_id: UUID,
        reaction_type: ReactionType,
    ) -> ReactionResult:
        """Toggle a reaction.

        No reaction adds one, the same type removes it, another type replaces
        it in the same row.
        """
        comment = await self._get_live_comment(comment_id)
        if comment.is_hidden and not viewer.can(Capability.MODERATE_COMMENTS):
            raise CommentNotFoundError

        current = await self.store.get_user_reaction(comment_id, viewer.id)
        change = resolve_reaction_change(
            current.reaction_type if current else None, reaction_type
        )

        if change == ReactionChange.REMOVE:
            await self.store.delete_reaction(comment_id, viewer.id)
        else:
            await self.store.upsert_reaction(
                create_reaction(comment_id, viewer.id, reaction_type)
            )

        await self._cache_delete(f"reactions:{comment_id}")
        await self.invalidate_cache(comment.chapter_id, comment.parent_id)

        logger.info(
            "reaction_changed",
            comment_id=str(comment_id),
            change=change.value,
            reaction_type=reaction_type.value,
        )

        if change == ReactionChange.ADD and self.notifications:
            await self.send_notification(
                self.notifications.notify_reaction(
                    comment,
                    viewer.id,
                    viewer.display_name or "Reader",
                    reaction_type.value,
                    viewer.avatar_url,
                )
            )

        summary = await self.get_reaction_summary(comment_id, viewer.id)
        return ReactionResult(change=change, summary=summary)

    async def get_reaction_summary(
        self, comment_id: UUID, viewer_id: UUID | None = None
    ) -> ReactionSummary:
        """Counts for every reaction type plus the viewer's own reaction.

        Counts are cached in a Redis hash; the viewer's reaction is always
        read from the store.
        """
        key = f"reactions:{comment_id}"

        cached = None
        if self.redis:
            try:
                cached = await self.redis.hgetall(key)
            except RedisError as e:
                logger.warning("cache_read_failed", key=key, error=str(e))

        if cached:
            summary = ReactionSummary()
            for reaction_type, count in cached.items():
                name = _decode(reaction_type)
                if name in REACTION_NAMES:
                    summary.counts[ReactionType(name)] = int(count)
            if viewer_id is not None:
                own = await self.store.get_user_reaction(comment_id, viewer_id)
                summary.user_reaction = own.reaction_type if own else None
            return summary

        summary = aggregate_reactions(
            await self.store.list_reactions(comment_id), viewer_id
        )

        if self.redis:
            try:
                await self.redis.hset(
                    key, mapping={k: str(v) for k, v in summary.to_dict().items()}
                )
                await self.redis.expire(
                    key, self.settings.comments_reaction_cache_ttl_seconds
                )
            except RedisError as e:
                logger.warning("cache_write_failed", key=key, error=str(e))

        return summary

    # ==========================================================================
    # Bookmarks
    # ==========================================================================

    async def toggle_bookmark(self, viewer: "Viewer", comment_id: UUID) -> bool:
        """Save or unsave a comment and return whether it is now saved.

        Saving needs a live comment the viewer can see. Unsaving always works,
        so bookmarks of removed comments can still be cleared.
        """
        if await self.store.get_bookmark(viewer.id, comment_id):
            await self.store.delete_bookmark(viewer.id, comment_id)
            logger.info("bookmark_removed", comment_id=str(comment_id))
            return False

        comment = await self._get_live_comment(comment_id)
        if comment.is_hidden and not viewer.can(Capability.MODERATE_COMMENTS):
            raise CommentNotFoundError

        await self.store.insert_bookmark(create_bookmark(viewer.id, comment))
        logger.info("bookmark_added", comment_id=str(comment_id))
        return True

    async def is_bookmarked(self, viewer: "Viewer", comment_id: UUID) -> bool:
        return await self.store.get_bookmark(viewer.id, comment_id) is not None

    async def list_bookmarks(
        self,
        viewer: "Viewer",
        sort: BookmarkSort = BookmarkSort.NEWEST,
        search: str | None = None,
    ) -> BookmarkListResponse:
        """The viewer's saved comments.

        Comments deleted or hidden since they were saved are left out. Search
        matches comment text or author name, ignoring case. Manga order groups
        bookmarks by manga, newest first inside each group.
        """
        needle = search.strip().casefold() if search else ""

        entries = []
        for bookmark in await self.store.list_bookmarks(viewer.id):
            comment = await self.store.get_comment(bookmark.comment_id)
            if comment is None or not _visible([comment], viewer):
                continue
            if needle and not (
                needle in comment.content.casefold()
                or needle in comment.author_name.casefold()
            ):
                continue
            entries.append((bookmark, comment))

        entries.sort(
            key=lambda e: (e[0].created_at, e[0].comment_id),
            reverse=sort != BookmarkSort.OLDEST,
        )
        if sort == BookmarkSort.MANGA:
            entries.sort(key=lambda e: str(e[0].manga_id))

        items = []
        for bookmark, comment in entries:
            summary = await self.get_reaction_summary(comment.comment_id, viewer.id)
            items.append(
                BookmarkResponse(
                    comment=CommentResponse.from_comment(comment, summary),
                    bookmarked_at=bookmark.created_at,
                )
            )

        return BookmarkListResponse(items=items, total=len(items), sort=sort)

    # ==========================================================================
    # Bans
    # ==========================================================================

    async def is_banned(self, user_id: UUID) -> bool:
        """Whether the user has a ban in force right now."""
        bans = await self.store.get_user_bans(user_id)
        return any(ban.is_in_force() for ban in bans)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _get_live_comment(self, comment_id: UUID) -> Comment:
        comment = await self.store.get_comment(comment_id)
        if comment is None or comment.is_deleted:
            raise CommentNotFoundError
        return comment

    async def send_notification(self, notification: Awaitable[object]) -> None:
        # Notification failures never fail the triggering action
        try:
            await notification
        except Exception as e:
            logger.warning("notification_failed", error=str(e))

    # ==========================================================================
    # Caching
    # ==========================================================================

    @staticmethod
    def _list_key(chapter_id: UUID, sort: SortMode) -> str:
        return f"comments:{chapter_id}:{sort.value}"

    @staticmethod
    def _replies_key(chapter_id: UUID, parent_id: UUID) -> str:
        return f"comments:{chapter_id}:replies:{parent_id}"

    async def _get_cached_list(
        self, chapter_id: UUID, sort: SortMode
    ) -> CommentListResponse | None:
        cached = await self._cache_get(self._list_key(chapter_id, sort))
        if cached:
            return CommentListResponse(**json.loads(cached))
        return None

    async def _cache_list(
        self, chapter_id: UUID, sort: SortMode, response: CommentListResponse
    ) -> None:
        await self._cache_set(
            self._list_key(chapter_id, sort),
            json.dumps(response.model_dump(), default=str),
        )

    async def _get_cached_replies(
        self, chapter_id: UUID, parent_id: UUID
    ) -> ReplyListResponse | None:
        cached = await self._cache_get(self._replies_key(chapter_id, parent_id))
        if cached:
            return ReplyListResponse(**json.loads(cached))
        return None

    async def _cache_replies(
        self, chapter_id: UUID, parent_id: UUID, response: ReplyListResponse
    ) -> None:
        await self._cache_set(
            self._replies_key(chapter_id, parent_id),
            json.dumps(response.model_dump(), default=str),
        )

    async def invalidate_cache(
        self, chapter_id: UUID, parent_id: UUID | None = None
    ) -> None:
        """Drop the cached list pages of a chapter, and a reply list if given."""
        keys = [self._list_key(chapter_id, sort) for sort in SortMode]
        if parent_id:
            keys.append(self._replies_key(chapter_id, parent_id))
        await self._cache_delete(*keys)

    async def _cache_get(self, key: str) -> str | None:
        if not self.redis:
            return None
        try:
            return await self.redis.get(key)
        except RedisError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None

    async def _cache_set(self, key: str, value: str) -> None:
        if not self.redis:
            return
        try:
            await self.redis.setex(key, self.settings.comments_cache_ttl_seconds, value)
        except RedisError as e:
            logger.warning("cache_write_failed", key=key, error=str(e))

    async def _cache_delete(self, *keys: str) -> None:
        if not self.redis:
            return
        try:
            await self.redis.delete(*keys)
        except RedisError as e:
            logger.warning("cache_invalidate_failed", keys=list(keys), error=str(e))


def _term_from_cache(item: dict) -> BannedTerm:
    return BannedTerm(
        term=item["term"],
        severity=Severity(item["severity"]),
        replacement=item["replacement"],
        created_by=UUID(item["created_by"]) if item["created_by"] else None,
        created_at=datetime.fromisoformat(item["created_at"]),
    )


def _is_moderator(viewer: "Viewer | None") -> bool:
    return viewer is not None and is_moderator(viewer.role)


def _visible(rows: list[Comment], viewer: "Viewer | None") -> list[Comment]:
    """Drop deleted rows, and hidden rows unless the viewer moderates."""
    show_hidden = _is_moderator(viewer)
    return [
        row for row in rows if not row.is_deleted and (show_hidden or not row.is_hidden)
    ]
