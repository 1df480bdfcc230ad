"""Comment subsystem errors.

Every error carries a stable ``code`` that the HTTP layer maps to a status.
"""


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CommentNotFoundError(CommentError):
    """Comment not found."""

    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class ReportNotFoundError(CommentError):
    """Report not found."""

    def __init__(self, message: str = "Report not found"):
        super().__init__(message, "report_not_found")


class BanNotFoundError(CommentError):
    """Ban not found."""

    def __init__(self, message: str = "Ban not found"):
        super().__init__(message, "ban_not_found")


class PermissionDeniedError(CommentError):
    """Permission denied for operation."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, "permission_denied")


class InvalidCommentError(CommentError):
    """Request is well-formed but violates a comment rule (bad parent, pin a reply)."""

    def __init__(self, message: str):
        super().__init__(message, "invalid_comment")


class ContentRejectedError(CommentError):
    """The moderation filter blocked the content.

    ``reason`` is the machine-readable blocking reason (empty, too_long,
    severe_content, spam).
    """

    def __init__(self, reason: str, message: str, warnings: list[str] | None = None):
        self.reason = reason
        self.warnings = warnings or []
        super().__init__(message, "content_rejected")


class InvalidReportTransitionError(CommentError):
    """Report is already in a terminal state."""

    def __init__(self, message: str = "Report has already been closed"):
        super().__init__(message, "invalid_report_transition")


class UserBannedError(CommentError):
    """Author is currently banned from commenting."""

    def __init__(self, message: str = "You are banned from commenting"):
        super().__init__(message, "user_banned")


class AlreadyBannedError(CommentError):
    """User already has a ban in force."""

    def __init__(self, message: str = "User already has an active ban"):
        super().__init__(message, "already_banned")


class RateLimitExceededError(CommentError):
    """Rate limit exceeded."""

    def __init__(self, message: str = "Too many requests, try again later"):
        super().__init__(message, "rate_limit_exceeded")


class BackendUnavailableError(CommentError):
    """Store timed out or could not be reached. Safe to retry."""

    def __init__(self, message: str = "Comments are temporarily unavailable"):
        super().__init__(message, "backend_unavailable")


class InvalidBanError(CommentError):
    """Ban request is malformed (missing reason, self-ban, bad duration)."""

    def __init__(self, message: str):
        super().__init__(message, "invalid_ban")
