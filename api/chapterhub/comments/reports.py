"""Report and ban workflow.

Business logic for:
- Filing reports (rate limited, never on one's own comment)
- Moving reports through pending -> reviewed -> resolved | dismissed
- Applying the resolution side effect (hide, delete, ban)
- Banning and lifting bans
- The admin-managed banned term list

A resolution's side effect is applied before the report status is written,
so a failed side effect leaves the report open.
"""

from collections import Counter
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from redis.exceptions import RedisError

from chapterhub.auth.permissions import Capability
from chapterhub.config.settings import Settings, get_settings

from .exceptions import (
    AlreadyBannedError,
    BanNotFoundError,
    CommentNotFoundError,
    InvalidBanError,
    InvalidCommentError,
    InvalidReportTransitionError,
    PermissionDeniedError,
    RateLimitExceededError,
    ReportNotFoundError,
)
from .models import (
    BannedTerm,
    CommentReport,
    ReportReason,
    ReportStatus,
    ResolutionAction,
    Severity,
    UserBan,
    create_banned_term,
    create_report,
    create_user_ban,
)


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from chapterhub.auth.schemas import Viewer
    from chapterhub.notifications.service import NotificationService

    from .service import CommentService
    from .store import CommentStore


logger = structlog.get_logger(__name__)


class ModerationService:
    """Service for reports, bans and banned terms."""

    def __init__(
        self,
        store: "CommentStore",
        comments: "CommentService",
        redis: "Redis | None" = None,
        settings: Settings | None = None,
        notifications: "NotificationService | None" = None,
    ):
        self.store = store
        self.comments = comments
        self.redis = redis
        self.settings = settings or get_settings()
        self.notifications = notifications

    # ==========================================================================
    # Reports
    # ==========================================================================

    async def report(
        self,
        viewer: "Viewer",
        comment_id: UUID,
        reason: ReportReason,
        description: str | None = None,
    ) -> CommentReport:
        """File a report against a comment.

        Raises:
            CommentNotFoundError: Comment missing or deleted
            PermissionDeniedError: Reporting one's own comment
            RateLimitExceededError: Too many reports this hour
        """
        comment = await self.store.get_comment(comment_id)
        if comment is None or comment.is_deleted:
            raise CommentNotFoundError

        if comment.author_id == viewer.id:
            raise PermissionDeniedError("You cannot report your own comment")

        await self._check_report_rate(viewer.id)

        report = create_report(
            comment=comment,
            reporter_id=viewer.id,
            reason=reason,
            description=description.strip() if description else None,
        )
        await self.store.insert_report(report)
        await self.store.flag_reported(comment)
        await self.comments.invalidate_cache(comment.chapter_id, comment.parent_id)

        logger.info(
            "comment_reported",
            report_id=str(report.report_id),
            comment_id=str(comment_id),
            reason=reason.value,
            report_count=comment.report_count,
        )
        return report

    async def _check_report_rate(self, user_id: UUID) -> None:
        if not self.redis:
            return

        key = f"report_rate:{user_id}"
        try:
            count = await self.redis.incr(key)
            if count == 1:
                await self.redis.expire(key, 3600)
        except RedisError as e:
            logger.warning("rate_limit_check_failed", error=str(e))
            return

        if count > self.settings.comments_reports_per_hour:
            raise RateLimitExceededError("Too many reports, try again later")

    async def list_reports(
        self,
        moderator: "Viewer",
        status: ReportStatus | None = ReportStatus.PENDING,
        limit: int = 50,
    ) -> list[CommentReport]:
        """Reports newest first. ``status=None`` lists every status."""
        _require(moderator, Capability.MODERATE_COMMENTS)
        return await self.store.list_reports(status, limit)

    async def get_report(self, moderator: "Viewer", report_id: UUID) -> CommentReport:
        _require(moderator, Capability.MODERATE_COMMENTS)
        return await self._get_report(report_id)

    async def _get_report(self, report_id: UUID) -> CommentReport:
        report = await self.store.get_report(report_id)
        if report is None:
            raise ReportNotFoundError
        return report

    async def mark_reviewed(
        self, moderator: "Viewer", report_id: UUID
    ) -> CommentReport:
        """Move a pending report to reviewed. Already reviewed is a no-op."""
        _require(moderator, Capability.MODERATE_COMMENTS)
        report = await self._get_report(report_id)

        if report.status.is_terminal:
            raise InvalidReportTransitionError
        if report.status == ReportStatus.REVIEWED:
            return report

        report.status = ReportStatus.REVIEWED
        report.reviewed_by = moderator.id
        report.reviewed_at = datetime.now(UTC)
        await self.store.update_report_status(report)

        logger.info("report_reviewed", report_id=str(report_id))
        return report

    async def resolve(
        self,
        moderator: "Viewer",
        report_id: UUID,
        action: ResolutionAction | None = None,
        note: str | None = None,
        ban_reason: str | None = None,
        ban_days: int | None = None,
    ) -> CommentReport:
        """Resolve a report, optionally hiding, deleting or banning.

        The side effect runs first; the status is written only once it
        succeeded.
        """
        _require(moderator, Capability.MODERATE_COMMENTS)
        report = await self._get_report(report_id)
        if report.status.is_terminal:
            raise InvalidReportTransitionError

        comment = await self.store.get_comment(report.comment_id)

        if action == ResolutionAction.HIDE:
            if comment is None:
                raise CommentNotFoundError
            await self.comments.apply_hidden(comment, True)
        elif action == ResolutionAction.DELETE:
            if comment is None:
                raise CommentNotFoundError
            if not comment.is_deleted:
                await self.store.soft_delete(
                    comment, moderator.id, note or f"Reported for {report.reason.value}"
                )
                await self.comments.invalidate_cache(
                    comment.chapter_id, comment.parent_id
                )
        elif action == ResolutionAction.BAN:
            if not await self.is_banned(report.reported_user_id):
                await self.ban_user(
                    moderator,
                    report.reported_user_id,
                    ban_reason or self.settings.comments_default_ban_reason,
                    ban_days,
                )

        report.status = ReportStatus.RESOLVED
        report.resolution_action = action
        report.resolution_note = note
        report.reviewed_by = moderator.id
        report.reviewed_at = datetime.now(UTC)
        await self.store.update_report_status(report)

        logger.info(
            "report_resolved",
            report_id=str(report_id),
            action=action.value if action else None,
        )

        if action is not None and comment is not None and self.notifications:
            await self.comments.send_notification(
                self.notifications.notify_moderation(
                    comment, moderator.id, action.value, note, from_report=True
                )
            )

        return report

    async def dismiss(
        self, moderator: "Viewer", report_id: UUID, note: str | None = None
    ) -> CommentReport:
        """Close a report without acting on the comment."""
        _require(moderator, Capability.MODERATE_COMMENTS)
        report = await self._get_report(report_id)
        if report.status.is_terminal:
            raise InvalidReportTransitionError

        report.status = ReportStatus.DISMISSED
        report.resolution_note = note
        report.reviewed_by = moderator.id
        report.reviewed_at = datetime.now(UTC)
        await self.store.update_report_status(report)

        logger.info("report_dismissed", report_id=str(report_id))
        return report

    async def report_stats(self, moderator: "Viewer") -> dict[str, int]:
        """Report counts per status."""
        _require(moderator, Capability.MODERATE_COMMENTS)
        reports = await self.store.list_reports(None, limit=10_000)
        counts = Counter(report.status.value for report in reports)
        stats = {status.value: counts.get(status.value, 0) for status in ReportStatus}
        stats["total"] = len(reports)
        return stats

    # ==========================================================================
    # Bans
    # ==========================================================================

    async def ban_user(
        self,
        moderator: "Viewer",
        user_id: UUID,
        reason: str,
        days: int | None = None,
    ) -> UserBan:
        """Ban a user from commenting.

        No duration means a permanent ban.

        Raises:
            PermissionDeniedError: Moderator lacks the ban capability
            InvalidBanError: Empty reason, self-ban or a duration under one day
            AlreadyBannedError: The user already has a ban in force
        """
        _require(moderator, Capability.BAN_USERS)

        reason = (reason or "").strip()
        if not reason:
            raise InvalidBanError("A ban reason is required")
        if user_id == moderator.id:
            raise InvalidBanError("You cannot ban yourself")
        if days is not None and days < 1:
            raise InvalidBanError("Ban duration must be at least one day")

        if await self.is_banned(user_id):
            raise AlreadyBannedError

        ban = create_user_ban(user_id, moderator.id, reason, days)
        await self.store.insert_ban(ban)

        logger.info(
            "user_banned",
            ban_id=str(ban.ban_id),
            user_id=str(user_id),
            is_permanent=ban.is_permanent,
        )
        return ban

    async def unban(self, moderator: "Viewer", ban_id: UUID) -> UserBan:
        """Lift a ban. The record is kept; lifting twice is a no-op."""
        _require(moderator, Capability.BAN_USERS)

        ban = await self.store.get_ban(ban_id)
        if ban is None:
            raise BanNotFoundError
        if not ban.is_active:
            return ban

        await self.store.deactivate_ban(ban, moderator.id)
        logger.info("user_unbanned", ban_id=str(ban_id), user_id=str(ban.user_id))
        return ban

    async def is_banned(self, user_id: UUID) -> bool:
        return await self.comments.is_banned(user_id)

    async def active_ban(self, user_id: UUID) -> UserBan | None:
        """The ban currently in force for a user, if any."""
        for ban in await self.store.get_user_bans(user_id):
            if ban.is_in_force():
                return ban
        return None

    async def list_bans(
        self, moderator: "Viewer", active_only: bool = True
    ) -> list[UserBan]:
        _require(moderator, Capability.BAN_USERS)
        return await self.store.list_bans(active_only)

    async def user_bans(self, moderator: "Viewer", user_id: UUID) -> list[UserBan]:
        """Ban history of a user, newest first."""
        _require(moderator, Capability.BAN_USERS)
        return await self.store.get_user_bans(user_id)

    # ==========================================================================
    # Banned terms
    # ==========================================================================

    async def list_terms(self, moderator: "Viewer") -> list[BannedTerm]:
        _require(moderator, Capability.MODERATE_COMMENTS)
        return await self.store.list_banned_terms()

    async def add_term(
        self,
        moderator: "Viewer",
        term: str,
        severity: Severity = Severity.MODERATE,
        replacement: str | None = None,
    ) -> BannedTerm:
        """Add or replace a banned term."""
        _require(moderator, Capability.MODERATE_COMMENTS)

        banned = create_banned_term(term, severity, replacement, moderator.id)
        if not banned.term:
            raise InvalidCommentError("Term cannot be empty")

        await self.store.upsert_banned_term(banned)
        await self.comments.invalidate_banned_terms()

        logger.info("banned_term_added", term=banned.term, severity=severity.value)
        return banned

    async def remove_term(self, moderator: "Viewer", term: str) -> None:
        _require(moderator, Capability.MODERATE_COMMENTS)

        await self.store.delete_banned_term(term.strip().lower())
        await self.comments.invalidate_banned_terms()

        logger.info("banned_term_removed", term=term)


def _require(viewer: "Viewer", capability: Capability) -> None:
    if not viewer.can(capability):
        raise PermissionDeniedError
