"""Thread building for chapter comments.

Turns a flat set of comment rows into top-level comments carrying their
replies. Only one nesting level exists: a reply whose parent is itself a
reply is attached to the top-level ancestor, and a reply whose ancestor was
not fetched (or was filtered out) is dropped.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from .models import Comment


class SortMode(str, Enum):
    """Top-level ordering. Replies are always oldest first."""

    PINNED = "pinned"
    NEWEST = "newest"
    OLDEST = "oldest"
    POPULAR = "popular"


@dataclass
class CommentThread:
    """A top-level comment and its replies."""

    comment: Comment
    replies: list[Comment] = field(default_factory=list)

    @property
    def comment_id(self) -> UUID:
        return self.comment.comment_id

    @property
    def reply_count(self) -> int:
        return len(self.replies)


def sort_top_level(
    comments: Iterable[Comment],
    sort: SortMode = SortMode.PINNED,
    reaction_totals: Mapping[UUID, int] | None = None,
) -> list[Comment]:
    """Order top-level comments.

    Ties fall back to recency, then id, so paging over the result is stable.
    """
    totals = reaction_totals or {}

    if sort == SortMode.OLDEST:
        return sorted(comments, key=lambda c: (c.created_at, c.comment_id))
    if sort == SortMode.NEWEST:
        return sorted(
            comments, key=lambda c: (c.created_at, c.comment_id), reverse=True
        )
    if sort == SortMode.POPULAR:
        return sorted(
            comments,
            key=lambda c: (totals.get(c.comment_id, 0), c.created_at, c.comment_id),
            reverse=True,
        )
    return sorted(
        comments,
        key=lambda c: (c.is_pinned, c.created_at, c.comment_id),
        reverse=True,
    )


def build_threads(
    rows: Iterable[Comment],
    sort: SortMode = SortMode.PINNED,
    reaction_totals: Mapping[UUID, int] | None = None,
) -> list[CommentThread]:
    """Nest replies under their top-level comment and order the result."""
    top_level: dict[UUID, Comment] = {}
    replies: dict[UUID, Comment] = {}
    for row in rows:
        if row.parent_id is None:
            top_level[row.comment_id] = row
        else:
            replies[row.comment_id] = row

    threads = {
        comment_id: CommentThread(comment=comment)
        for comment_id, comment in top_level.items()
    }

    for reply in replies.values():
        root_id = _top_level_ancestor(reply, replies)
        thread = threads.get(root_id) if root_id else None
        if thread is not None:
            thread.replies.append(reply)

    for thread in threads.values():
        thread.replies.sort(key=lambda c: (c.created_at, c.comment_id))

    ordered = sort_top_level(top_level.values(), sort, reaction_totals)
    return [threads[c.comment_id] for c in ordered]


def _top_level_ancestor(reply: Comment, replies: Mapping[UUID, Comment]) -> UUID | None:
    seen: set[UUID] = set()
    parent_id = reply.parent_id
    while parent_id in replies:
        if parent_id in seen:
            return None
        seen.add(parent_id)
        parent_id = replies[parent_id].parent_id
    return parent_id
