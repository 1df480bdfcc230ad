"""Chapter comment subsystem.

Provides:
- Threaded comments (one reply level) with pinned-first ordering
- Reactions with a one-per-user toggle rule
- Content moderation (structure, severity, spam, quality)
- Reports, resolutions and comment bans
- Page-based listing and infinite-scroll state
- Per-reader bookmarks

Note: Routers are not exported here to avoid circular imports.
Import directly from chapterhub.comments.router when needed.
"""

from .models import (
    COMMENTS_TABLES_CQL,
    Comment,
    CommentBookmark,
    CommentReport,
    ReactionType,
    ReportReason,
    ReportStatus,
    UserBan,
)
from .pagination import CommentFeed
from .reports import ModerationService
from .service import CommentService
from .store import CommentStore


__all__ = [
    "COMMENTS_TABLES_CQL",
    "Comment",
    "CommentBookmark",
    "CommentFeed",
    "CommentReport",
    "CommentService",
    "CommentStore",
    "ModerationService",
    "ReactionType",
    "ReportReason",
    "ReportStatus",
    "UserBan",
]
