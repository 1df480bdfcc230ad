"""Chapter comment API endpoints.

Provides routes for:
- Posting, editing and deleting comments
- Paged chapter listings and on-demand replies
- Pinning and hiding (moderators)
- Reaction toggles
- Bookmarks
- Reporting a comment
- Live moderation preview of a draft
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from chapterhub.auth.dependencies import CurrentViewer, OptionalViewer

from .dependencies import CommentServiceDep, ModerationServiceDep, handle_comment_error
from .exceptions import CommentError
from .models import BookmarkSort
from .schemas import (
    BookmarkListResponse,
    BookmarkStatusResponse,
    CommentListResponse,
    CommentResponse,
    CreateCommentRequest,
    CreateReportRequest,
    MessageResponse,
    ModerationPreviewRequest,
    ModerationPreviewResponse,
    ReactionCountsResponse,
    ReactionRequest,
    ReactionSummaryResponse,
    ReplyListResponse,
    ReportResponse,
    SubmitCommentResponse,
    UpdateCommentRequest,
)
from .threads import SortMode


router = APIRouter(prefix="/v1/comments", tags=["comments"])


@router.post(
    "",
    response_model=SubmitCommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post comment",
)
async def create_comment(
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
) -> SubmitCommentResponse:
    """Post a comment or a reply on a chapter.

    The text is moderated first; blocked content returns 400 with the
    blocking reason and nothing is stored.
    """
    try:
        result = await comment_service.submit(
            viewer=viewer,
            chapter_id=data.chapter_id,
            manga_id=data.manga_id,
            content=data.content,
            parent_id=data.parent_id,
            is_spoiler=data.is_spoiler,
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    return SubmitCommentResponse(
        comment=CommentResponse.from_comment(result.comment),
        warnings=result.moderation.warnings,
        quality_score=result.moderation.quality_score,
        quality_badge=result.moderation.quality_badge,
    )


@router.post(
    "/moderation/preview",
    response_model=ModerationPreviewResponse,
    summary="Preview moderation",
)
async def preview_moderation(
    data: ModerationPreviewRequest,
    comment_service: CommentServiceDep,
    viewer: OptionalViewer,
) -> ModerationPreviewResponse:
    """Run the moderation filter over a draft without storing it."""
    try:
        result = await comment_service.preview(data.content, viewer)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return ModerationPreviewResponse.from_result(result)


@router.get(
    "/chapter/{chapter_id}",
    response_model=CommentListResponse,
    summary="List chapter comments",
)
async def list_chapter_comments(
    chapter_id: UUID,
    comment_service: CommentServiceDep,
    viewer: OptionalViewer,
    page: int = Query(default=0, ge=0),
    sort: SortMode = Query(default=SortMode.PINNED),
    page_size: int | None = Query(default=None, ge=1, le=50),
) -> CommentListResponse:
    """Get one page of top-level comments.

    Replies are not included, only their count.
    """
    try:
        return await comment_service.list_comments(
            chapter_id=chapter_id,
            viewer=viewer,
            page=page,
            sort=sort,
            page_size=page_size,
        )
    except CommentError as e:
        raise handle_comment_error(e) from e


@router.get(
    "/bookmarks",
    response_model=BookmarkListResponse,
    summary="List bookmarked comments",
)
async def list_bookmarks(
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
    sort: BookmarkSort = Query(default=BookmarkSort.NEWEST),
    search: str | None = Query(default=None, max_length=100),
) -> BookmarkListResponse:
    """The viewer's saved comments, filtered by text or author name."""
    try:
        return await comment_service.list_bookmarks(viewer, sort, search)
    except CommentError as e:
        raise handle_comment_error(e) from e


@router.get(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Get comment",
)
async def get_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    viewer: OptionalViewer,
) -> CommentResponse:
    """Get a single comment. Deleted comments come back with masked content."""
    try:
        return await comment_service.get_comment_response(comment_id, viewer)
    except CommentError as e:
        raise handle_comment_error(e) from e


@router.get(
    "/{comment_id}/replies",
    response_model=ReplyListResponse,
    summary="Get comment replies",
)
async def get_comment_replies(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    viewer: OptionalViewer,
    limit: int | None = Query(default=None, ge=1, le=100),
) -> ReplyListResponse:
    """Get replies oldest first. Ask again with a larger limit for more."""
    try:
        return await comment_service.get_replies(comment_id, viewer, limit)
    except CommentError as e:
        raise handle_comment_error(e) from e


@router.put(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Edit comment",
)
async def update_comment(
    comment_id: UUID,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
) -> CommentResponse:
    """Edit a comment. Only the author or a moderator may edit."""
    try:
        comment = await comment_service.edit(
            viewer, comment_id, data.content, data.is_spoiler
        )
        summary = await comment_service.get_reaction_summary(comment_id, viewer.id)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return CommentResponse.from_comment(comment, summary)


@router.delete(
    "/{comment_id}",
    response_model=MessageResponse,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
    reason: str | None = Query(default=None, max_length=500),
) -> MessageResponse:
    """Soft delete a comment. The author or a moderator may delete."""
    try:
        await comment_service.delete(viewer, comment_id, reason)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return MessageResponse(message="Comment deleted")


@router.post(
    "/{comment_id}/pin",
    response_model=CommentResponse,
    summary="Pin comment",
)
async def pin_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
) -> CommentResponse:
    try:
        comment = await comment_service.pin(viewer, comment_id)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return CommentResponse.from_comment(comment)


@router.delete(
    "/{comment_id}/pin",
    response_model=CommentResponse,
    summary="Unpin comment",
)
async def unpin_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
) -> CommentResponse:
    try:
        comment = await comment_service.unpin(viewer, comment_id)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return CommentResponse.from_comment(comment)


@router.post(
    "/{comment_id}/hide",
    response_model=CommentResponse,
    summary="Hide comment",
)
async def hide_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
) -> CommentResponse:
    """Hide a comment from readers (moderators only)."""
    try:
        comment = await comment_service.set_hidden(viewer, comment_id, True)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return CommentResponse.from_comment(comment)


@router.delete(
    "/{comment_id}/hide",
    response_model=CommentResponse,
    summary="Unhide comment",
)
async def unhide_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
) -> CommentResponse:
    try:
        comment = await comment_service.set_hidden(viewer, comment_id, False)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return CommentResponse.from_comment(comment)


@router.post(
    "/{comment_id}/reactions",
    response_model=ReactionSummaryResponse,
    summary="Toggle reaction",
)
async def toggle_reaction(
    comment_id: UUID,
    data: ReactionRequest,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
) -> ReactionSummaryResponse:
    """Add, switch or remove the viewer's reaction.

    Sending the active type again removes it.
    """
    try:
        result = await comment_service.set_reaction(
            viewer, comment_id, data.reaction_type
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    return ReactionSummaryResponse(
        comment_id=comment_id,
        reactions=ReactionCountsResponse.from_summary(result.summary),
        user_reaction=result.summary.user_reaction,
        change=result.change.value,
    )


@router.get(
    "/{comment_id}/reactions",
    response_model=ReactionSummaryResponse,
    summary="Get reactions",
)
async def get_reactions(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    viewer: OptionalViewer,
) -> ReactionSummaryResponse:
    try:
        await comment_service.get_comment(comment_id, viewer)
        summary = await comment_service.get_reaction_summary(
            comment_id, viewer.id if viewer else None
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    return ReactionSummaryResponse(
        comment_id=comment_id,
        reactions=ReactionCountsResponse.from_summary(summary),
        user_reaction=summary.user_reaction,
    )


@router.post(
    "/{comment_id}/bookmark",
    response_model=BookmarkStatusResponse,
    summary="Toggle bookmark",
)
async def toggle_bookmark(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
) -> BookmarkStatusResponse:
    """Save the comment, or unsave it when already saved."""
    try:
        bookmarked = await comment_service.toggle_bookmark(viewer, comment_id)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return BookmarkStatusResponse(comment_id=comment_id, bookmarked=bookmarked)


@router.get(
    "/{comment_id}/bookmark",
    response_model=BookmarkStatusResponse,
    summary="Get bookmark status",
)
async def get_bookmark_status(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    viewer: CurrentViewer,
) -> BookmarkStatusResponse:
    bookmarked = await comment_service.is_bookmarked(viewer, comment_id)
    return BookmarkStatusResponse(comment_id=comment_id, bookmarked=bookmarked)


@router.post(
    "/{comment_id}/reports",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report comment",
)
async def report_comment(
    comment_id: UUID,
    data: CreateReportRequest,
    moderation_service: ModerationServiceDep,
    viewer: CurrentViewer,
) -> ReportResponse:
    """Report a comment for moderation. Limited per hour."""
    try:
        report = await moderation_service.report(
            viewer, comment_id, data.reason, data.description
        )
    except CommentError as e:
        raise handle_comment_error(e) from e
    return ReportResponse.from_report(report)
