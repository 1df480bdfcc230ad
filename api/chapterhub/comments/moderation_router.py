"""Moderation API endpoints.

Provides routes for:
- The report queue: list, stats, review, resolve, dismiss
- Comment bans: list, create, lift, per-user status
- The banned term list used by the moderation filter

Every route requires a moderator; banning needs the ban capability, which
the service checks.
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from chapterhub.auth.dependencies import ModeratorViewer

from .dependencies import ModerationServiceDep, handle_comment_error
from .exceptions import CommentError
from .models import ReportStatus
from .schemas import (
    BannedTermRequest,
    BannedTermResponse,
    BanListResponse,
    BanResponse,
    BanStatusResponse,
    BanUserRequest,
    DismissReportRequest,
    MessageResponse,
    ReportListResponse,
    ReportResponse,
    ReportStatsResponse,
    ResolveReportRequest,
)


router = APIRouter(prefix="/v1/moderation", tags=["moderation"])


# ==============================================================================
# Reports
# ==============================================================================


@router.get(
    "/reports",
    response_model=ReportListResponse,
    summary="List reports",
)
async def list_reports(
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
    report_status: ReportStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
) -> ReportListResponse:
    """List reports newest first, optionally filtered by status."""
    try:
        reports = await moderation_service.list_reports(
            moderator, report_status, limit + 1
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    return ReportListResponse(
        items=[ReportResponse.from_report(r) for r in reports[:limit]],
        total=min(len(reports), limit),
        has_more=len(reports) > limit,
    )


@router.get(
    "/reports/stats",
    response_model=ReportStatsResponse,
    summary="Report statistics",
)
async def report_stats(
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> ReportStatsResponse:
    try:
        stats = await moderation_service.report_stats(moderator)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return ReportStatsResponse(**stats)


@router.get(
    "/reports/{report_id}",
    response_model=ReportResponse,
    summary="Get report",
)
async def get_report(
    report_id: UUID,
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> ReportResponse:
    try:
        report = await moderation_service.get_report(moderator, report_id)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return ReportResponse.from_report(report)


@router.post(
    "/reports/{report_id}/review",
    response_model=ReportResponse,
    summary="Mark report reviewed",
)
async def review_report(
    report_id: UUID,
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> ReportResponse:
    try:
        report = await moderation_service.mark_reviewed(moderator, report_id)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return ReportResponse.from_report(report)


@router.post(
    "/reports/{report_id}/resolve",
    response_model=ReportResponse,
    summary="Resolve report",
)
async def resolve_report(
    report_id: UUID,
    data: ResolveReportRequest,
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> ReportResponse:
    """Resolve a report, optionally hiding, deleting or banning.

    Closed reports return 409.
    """
    try:
        report = await moderation_service.resolve(
            moderator,
            report_id,
            action=data.action,
            note=data.note,
            ban_reason=data.ban_reason,
            ban_days=data.ban_days,
        )
    except CommentError as e:
        raise handle_comment_error(e) from e
    return ReportResponse.from_report(report)


@router.post(
    "/reports/{report_id}/dismiss",
    response_model=ReportResponse,
    summary="Dismiss report",
)
async def dismiss_report(
    report_id: UUID,
    data: DismissReportRequest,
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> ReportResponse:
    try:
        report = await moderation_service.dismiss(moderator, report_id, data.note)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return ReportResponse.from_report(report)


# ==============================================================================
# Bans
# ==============================================================================


@router.get(
    "/bans",
    response_model=BanListResponse,
    summary="List bans",
)
async def list_bans(
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
    active_only: bool = Query(default=True),
) -> BanListResponse:
    try:
        bans = await moderation_service.list_bans(moderator, active_only)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return BanListResponse(
        items=[BanResponse.from_ban(b) for b in bans],
        total=len(bans),
    )


@router.post(
    "/bans",
    response_model=BanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ban user",
)
async def ban_user(
    data: BanUserRequest,
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> BanResponse:
    """Ban a user from commenting. No duration means permanent."""
    try:
        ban = await moderation_service.ban_user(
            moderator, data.user_id, data.reason, data.duration_days
        )
    except CommentError as e:
        raise handle_comment_error(e) from e
    return BanResponse.from_ban(ban)


@router.delete(
    "/bans/{ban_id}",
    response_model=BanResponse,
    summary="Lift ban",
)
async def lift_ban(
    ban_id: UUID,
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> BanResponse:
    """Lift a ban. The record stays in the history."""
    try:
        ban = await moderation_service.unban(moderator, ban_id)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return BanResponse.from_ban(ban)


@router.get(
    "/users/{user_id}/ban",
    response_model=BanStatusResponse,
    summary="User ban status",
)
async def user_ban_status(
    user_id: UUID,
    moderation_service: ModerationServiceDep,
    _moderator: ModeratorViewer,
) -> BanStatusResponse:
    try:
        ban = await moderation_service.active_ban(user_id)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return BanStatusResponse(
        user_id=user_id,
        is_banned=ban is not None,
        ban=BanResponse.from_ban(ban) if ban else None,
    )


@router.get(
    "/users/{user_id}/bans",
    response_model=BanListResponse,
    summary="User ban history",
)
async def user_ban_history(
    user_id: UUID,
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> BanListResponse:
    try:
        bans = await moderation_service.user_bans(moderator, user_id)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return BanListResponse(
        items=[BanResponse.from_ban(b) for b in bans],
        total=len(bans),
    )


# ==============================================================================
# Banned terms
# ==============================================================================


@router.get(
    "/terms",
    response_model=list[BannedTermResponse],
    summary="List banned terms",
)
async def list_terms(
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> list[BannedTermResponse]:
    try:
        terms = await moderation_service.list_terms(moderator)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return [BannedTermResponse.from_term(t) for t in terms]


@router.post(
    "/terms",
    response_model=BannedTermResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add banned term",
)
async def add_term(
    data: BannedTermRequest,
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> BannedTermResponse:
    try:
        term = await moderation_service.add_term(
            moderator, data.term, data.severity, data.replacement
        )
    except CommentError as e:
        raise handle_comment_error(e) from e
    return BannedTermResponse.from_term(term)


@router.delete(
    "/terms/{term}",
    response_model=MessageResponse,
    summary="Remove banned term",
)
async def remove_term(
    term: str,
    moderation_service: ModerationServiceDep,
    moderator: ModeratorViewer,
) -> MessageResponse:
    try:
        await moderation_service.remove_term(moderator, term)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return MessageResponse(message="Term removed")
