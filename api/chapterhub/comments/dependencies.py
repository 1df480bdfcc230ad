"""FastAPI dependencies for chapter comments.

Provides dependency injection for:
- Comment service
- Moderation (reports and bans) service
- Error mapping from domain errors to HTTP responses
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .exceptions import CommentError, ContentRejectedError
from .reports import ModerationService
from .service import CommentService


async def get_comment_service(request: Request) -> CommentService:
    """Get comment service from app state.

    Args:
        request: FastAPI request

    Returns:
        CommentService instance
    """
    service = getattr(request.app.state, "comment_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Comment service not available",
        )
    return service


async def get_moderation_service(request: Request) -> ModerationService:
    """Get moderation service from app state."""
    service = getattr(request.app.state, "moderation_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Moderation service not available",
        )
    return service


# Type aliases for dependency injection
CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
ModerationServiceDep = Annotated[ModerationService, Depends(get_moderation_service)]


STATUS_MAP = {
    "comment_not_found": status.HTTP_404_NOT_FOUND,
    "report_not_found": status.HTTP_404_NOT_FOUND,
    "ban_not_found": status.HTTP_404_NOT_FOUND,
    "permission_denied": status.HTTP_403_FORBIDDEN,
    "user_banned": status.HTTP_403_FORBIDDEN,
    "content_rejected": status.HTTP_400_BAD_REQUEST,
    "invalid_comment": status.HTTP_400_BAD_REQUEST,
    "invalid_ban": status.HTTP_400_BAD_REQUEST,
    "invalid_report_transition": status.HTTP_409_CONFLICT,
    "already_banned": status.HTTP_409_CONFLICT,
    "rate_limit_exceeded": status.HTTP_429_TOO_MANY_REQUESTS,
    "backend_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def handle_comment_error(error: CommentError) -> HTTPException:
    """Convert comment errors to HTTP exceptions.

    The detail always carries the error ``code`` and ``message``. Rejected
    content adds the blocking reason and warnings; backend failures add
    ``retryable`` so clients can offer a retry.
    """
    status_code = STATUS_MAP.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    detail: dict = {"code": error.code, "message": error.message}
    if isinstance(error, ContentRejectedError):
        detail["reason"] = error.reason
        detail["warnings"] = error.warnings
    if status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        detail["retryable"] = True

    return HTTPException(status_code=status_code, detail=detail)
