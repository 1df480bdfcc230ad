"""Pydantic schemas for chapter comments.

Request/Response models with validation for:
- Comment submission, edits and listing
- Reactions
- Reports, bans and banned terms
- Bookmarked comments
- Page-number pagination
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import (
    BookmarkSort,
    ReactionType,
    ReportReason,
    ReportStatus,
    ResolutionAction,
    Severity,
)
from .threads import SortMode


DELETED_PLACEHOLDER = "[Comment removed]"

# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommentRequest(BaseModel):
    """Request to post a comment or a reply on a chapter.

    Content is not stripped or length-checked here: the moderation filter
    reports empty and oversized content with its own reason codes.
    """

    chapter_id: UUID
    manga_id: UUID
    parent_id: UUID | None = None
    content: str = Field(..., max_length=10000)
    is_spoiler: bool = False


class UpdateCommentRequest(BaseModel):
    """Request to edit a comment."""

    content: str = Field(..., max_length=10000)
    is_spoiler: bool | None = None


class ReactionRequest(BaseModel):
    """Request to toggle a reaction on a comment."""

    reaction_type: ReactionType


class CreateReportRequest(BaseModel):
    """Request to report a comment."""

    reason: ReportReason
    description: str | None = Field(None, max_length=1000)


class ModerationPreviewRequest(BaseModel):
    """Draft text to check before posting."""

    content: str = Field(..., max_length=10000)


class ResolveReportRequest(BaseModel):
    """Request to resolve a report, optionally acting on the comment."""

    action: ResolutionAction | None = None
    note: str | None = Field(None, max_length=1000)
    ban_reason: str | None = Field(None, max_length=500)
    ban_days: int | None = Field(
        None, ge=1, le=3650, description="Ban duration in days (None for permanent)"
    )


class DismissReportRequest(BaseModel):
    """Request to dismiss a report."""

    note: str | None = Field(None, max_length=1000)


class BanUserRequest(BaseModel):
    """Request to ban a user from commenting."""

    user_id: UUID
    reason: str = Field(..., min_length=1, max_length=500)
    duration_days: int | None = Field(
        None,
        ge=1,
        le=3650,
        description="Duration in days (None for permanent)",
    )

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Strip whitespace and validate reason."""
        v = v.strip()
        if not v:
            msg = "Reason cannot be empty"
            raise ValueError(msg)
        return v


class BannedTermRequest(BaseModel):
    """Request to add or update a banned term."""

    term: str = Field(..., min_length=1, max_length=100)
    severity: Severity = Severity.MODERATE
    replacement: str | None = Field(None, max_length=100)

    @field_validator("term")
    @classmethod
    def validate_term(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            msg = "Term cannot be empty"
            raise ValueError(msg)
        return v

    @field_validator("severity")
    @classmethod
    def validate_severity(cls, v: Severity) -> Severity:
        if v == Severity.NONE:
            msg = "Severity must be moderate or severe"
            raise ValueError(msg)
        return v


# ==============================================================================
# Response Schemas
# ==============================================================================


class AuthorResponse(BaseModel):
    """Author information in comment response."""

    id: UUID
    name: str
    avatar: str | None = None
    role: str = "user"


class ReactionCountsResponse(BaseModel):
    """Reaction counts for a comment. Every type is always present."""

    like: int = 0
    dislike: int = 0
    love: int = 0
    laugh: int = 0
    angry: int = 0
    sad: int = 0
    total: int = 0

    @classmethod
    def from_summary(cls, summary: Any | None) -> "ReactionCountsResponse":
        if summary is None:
            return cls()
        return cls(**summary.to_dict(), total=summary.total)


class CommentResponse(BaseModel):
    """Response for a single comment."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    chapter_id: UUID
    manga_id: UUID
    parent_id: UUID | None = None
    author: AuthorResponse
    content: str
    is_spoiler: bool = False
    is_edited: bool = False
    edited_at: datetime | None = None
    is_deleted: bool = False
    is_hidden: bool = False
    is_pinned: bool = False
    is_reported: bool = False
    report_count: int = 0
    reply_count: int = 0
    reactions: ReactionCountsResponse = Field(default_factory=ReactionCountsResponse)
    user_reaction: ReactionType | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_comment(
        cls,
        comment: Any,
        summary: Any | None = None,
        reply_count: int = 0,
    ) -> "CommentResponse":
        """Create response from Comment entity.

        Args:
            comment: Comment entity
            summary: ReactionSummary for the comment, as seen by the viewer
            reply_count: Number of visible replies
        """
        content = DELETED_PLACEHOLDER if comment.is_deleted else comment.content

        return cls(
            id=comment.comment_id,
            chapter_id=comment.chapter_id,
            manga_id=comment.manga_id,
            parent_id=comment.parent_id,
            author=AuthorResponse(
                id=comment.author_id,
                name=comment.author_name,
                avatar=comment.author_avatar,
                role=comment.author_role,
            ),
            content=content,
            is_spoiler=comment.is_spoiler,
            is_edited=comment.is_edited,
            edited_at=comment.edited_at,
            is_deleted=comment.is_deleted,
            is_hidden=comment.is_hidden,
            is_pinned=comment.is_pinned,
            is_reported=comment.is_reported,
            report_count=comment.report_count,
            reply_count=reply_count,
            reactions=ReactionCountsResponse.from_summary(summary),
            user_reaction=summary.user_reaction if summary else None,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class SubmitCommentResponse(BaseModel):
    """Created comment plus the non-blocking moderation feedback."""

    comment: CommentResponse
    warnings: list[str] = Field(default_factory=list)
    quality_score: int
    quality_badge: str | None = None


class CommentListResponse(BaseModel):
    """One page of top-level comments. Replies are loaded separately."""

    items: list[CommentResponse]
    total: int
    page: int
    page_size: int
    sort: SortMode = SortMode.PINNED
    has_more: bool
    next_page: int | None = None


class ReplyListResponse(BaseModel):
    """Replies of a top-level comment, oldest first."""

    parent_id: UUID
    items: list[CommentResponse]
    total: int
    has_more: bool


class ReactionSummaryResponse(BaseModel):
    """Reaction state of a comment after a read or a toggle."""

    comment_id: UUID
    reactions: ReactionCountsResponse
    user_reaction: ReactionType | None = None
    change: str | None = None


class ModerationPreviewResponse(BaseModel):
    """Moderation verdict for a draft, nothing is stored."""

    allowed: bool
    blocking_reason: str | None = None
    message: str | None = None
    warnings: list[str] = Field(default_factory=list)
    severity: Severity = Severity.NONE
    quality_score: int
    quality_badge: str | None = None

    @classmethod
    def from_result(cls, result: Any) -> "ModerationPreviewResponse":
        return cls(
            allowed=result.allowed,
            blocking_reason=result.blocking_reason,
            message=result.message,
            warnings=result.warnings,
            severity=result.severity,
            quality_score=result.quality_score,
            quality_badge=result.quality_badge,
        )


class ReportResponse(BaseModel):
    """Response for a comment report."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    comment_id: UUID
    chapter_id: UUID
    reporter_id: UUID
    reported_user_id: UUID
    reason: ReportReason
    description: str | None
    status: ReportStatus
    resolution_note: str | None = None
    resolution_action: ResolutionAction | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_report(cls, report: Any) -> "ReportResponse":
        """Create response from CommentReport entity."""
        return cls(
            id=report.report_id,
            comment_id=report.comment_id,
            chapter_id=report.chapter_id,
            reporter_id=report.reporter_id,
            reported_user_id=report.reported_user_id,
            reason=report.reason,
            description=report.description,
            status=report.status,
            resolution_note=report.resolution_note,
            resolution_action=report.resolution_action,
            reviewed_by=report.reviewed_by,
            reviewed_at=report.reviewed_at,
            created_at=report.created_at,
        )


class ReportListResponse(BaseModel):
    """List of reports, newest first."""

    items: list[ReportResponse]
    total: int
    has_more: bool


class ReportStatsResponse(BaseModel):
    """Report counts per status."""

    pending: int = 0
    reviewed: int = 0
    resolved: int = 0
    dismissed: int = 0
    total: int = 0


class BanResponse(BaseModel):
    """Response for a comment ban."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    reason: str
    banned_by: UUID
    is_permanent: bool
    expires_at: datetime | None = None
    is_active: bool
    in_force: bool
    created_at: datetime
    lifted_by: UUID | None = None
    lifted_at: datetime | None = None

    @classmethod
    def from_ban(cls, ban: Any) -> "BanResponse":
        """Create response from UserBan entity."""
        return cls(
            id=ban.ban_id,
            user_id=ban.user_id,
            reason=ban.reason,
            banned_by=ban.banned_by,
            is_permanent=ban.is_permanent,
            expires_at=ban.expires_at,
            is_active=ban.is_active,
            in_force=ban.is_in_force(),
            created_at=ban.created_at,
            lifted_by=ban.lifted_by,
            lifted_at=ban.lifted_at,
        )


class BanListResponse(BaseModel):
    """List of bans."""

    items: list[BanResponse]
    total: int


class BanStatusResponse(BaseModel):
    """Whether a user may currently comment."""

    user_id: UUID
    is_banned: bool
    ban: BanResponse | None = None


class BannedTermResponse(BaseModel):
    """Response for a banned term."""

    term: str
    severity: Severity
    replacement: str | None = None
    created_at: datetime

    @classmethod
    def from_term(cls, term: Any) -> "BannedTermResponse":
        return cls(
            term=term.term,
            severity=term.severity,
            replacement=term.replacement,
            created_at=term.created_at,
        )


class BookmarkResponse(BaseModel):
    """A saved comment and when it was saved."""

    comment: CommentResponse
    bookmarked_at: datetime


class BookmarkListResponse(BaseModel):
    items: list[BookmarkResponse]
    total: int
    sort: BookmarkSort = BookmarkSort.NEWEST


class BookmarkStatusResponse(BaseModel):
    """Whether the viewer has the comment saved."""

    comment_id: UUID
    bookmarked: bool


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
    success: bool = True
