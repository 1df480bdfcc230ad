"""Infinite-scroll state over the paged comment endpoints.

``CommentFeed`` keeps what a reader has loaded so far for one chapter:
top-level comments appended page by page, and replies fetched only when a
comment is expanded. Search runs over the loaded comments only.
"""

from collections.abc import Awaitable, Callable
from uuid import UUID

import structlog

from .schemas import CommentListResponse, CommentResponse, ReplyListResponse


logger = structlog.get_logger(__name__)

PageLoader = Callable[[int], Awaitable[CommentListResponse]]
RepliesLoader = Callable[[UUID, int], Awaitable[ReplyListResponse]]


class CommentFeed:
    """Accumulates pages of top-level comments and on-demand replies.

    Args:
        load_page: Returns page ``n`` of the chapter's top-level comments
        load_replies: Returns up to ``limit`` replies of a comment
        replies_page_size: Replies fetched per expansion
    """

    def __init__(
        self,
        load_page: PageLoader,
        load_replies: RepliesLoader,
        replies_page_size: int = 5,
    ):
        self._load_page = load_page
        self._load_replies = load_replies
        self.replies_page_size = replies_page_size
        self.reset()

    def reset(self) -> None:
        """Forget everything loaded, e.g. after the sort order changed."""
        self.items: list[CommentResponse] = []
        self.total = 0
        self.has_more = True
        self.next_page: int | None = 0
        self._seen: set[UUID] = set()
        self._replies: dict[UUID, ReplyListResponse] = {}

    async def load_more(self) -> list[CommentResponse]:
        """Fetch the next page and append the comments not seen yet.

        Returns the newly appended comments.
        """
        if not self.has_more or self.next_page is None:
            return []

        page = await self._load_page(self.next_page)

        added = []
        for item in page.items:
            if item.id in self._seen:
                continue
            self._seen.add(item.id)
            added.append(item)

        self.items.extend(added)
        self.total = page.total
        self.has_more = page.has_more
        self.next_page = page.next_page

        logger.debug(
            "feed_page_loaded",
            page=page.page,
            added=len(added),
            duplicates=len(page.items) - len(added),
        )
        return added

    async def expand_replies(
        self, comment_id: UUID, refresh: bool = False
    ) -> ReplyListResponse:
        """Replies of a comment, fetched once and then served from memory."""
        if not refresh and comment_id in self._replies:
            return self._replies[comment_id]

        replies = await self._load_replies(comment_id, self.replies_page_size)
        self._replies[comment_id] = replies
        return replies

    async def load_more_replies(self, comment_id: UUID) -> ReplyListResponse:
        """Re-fetch a comment's replies with a larger limit."""
        current = self._replies.get(comment_id)
        shown = len(current.items) if current else 0

        replies = await self._load_replies(
            comment_id, shown + self.replies_page_size
        )
        self._replies[comment_id] = replies
        return replies

    def replies_of(self, comment_id: UUID) -> ReplyListResponse | None:
        return self._replies.get(comment_id)

    def search(self, term: str) -> list[CommentResponse]:
        """Loaded comments whose text or author name contains ``term``.

        Case-insensitive. An empty term returns every loaded comment.
        """
        needle = term.strip().lower()
        if not needle:
            return list(self.items)
        return [
            item
            for item in self.items
            if needle in item.content.lower() or needle in item.author.name.lower()
        ]
