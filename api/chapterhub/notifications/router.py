"""Notification API routes.

Endpoints for:
- GET /v1/notifications - List the viewer's notifications
- GET /v1/notifications/unread-count - Get unread count
- POST /v1/notifications/mark-read - Mark specific as read
- POST /v1/notifications/mark-all-read - Mark all as read
- DELETE /v1/notifications/{id} - Delete a notification
- GET /v1/notifications/settings - Read notification settings
- PATCH /v1/notifications/settings - Change notification settings
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from chapterhub.auth.dependencies import CurrentViewer
from chapterhub.notifications.dependencies import NotificationServiceDep
from chapterhub.notifications.schemas import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
    NotificationSettingsResponse,
    NotificationSettingsUpdate,
    UnreadCountResponse,
)


router = APIRouter(
    prefix="/v1/notifications",
    tags=["notifications"],
)


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications",
)
async def list_notifications(
    viewer: CurrentViewer,
    service: NotificationServiceDep,
    limit: int = Query(default=20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(default=None, description="Pagination cursor"),
    unread_only: bool = Query(default=False, description="Only show unread"),
) -> NotificationListResponse:
    """List notifications for the current viewer."""
    try:
        return await service.get_notifications(
            user_id=viewer.id,
            limit=limit,
            cursor=cursor,
            unread_only=unread_only,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)
        ) from e


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Get unread notification count",
)
async def get_unread_count(
    viewer: CurrentViewer,
    service: NotificationServiceDep,
) -> UnreadCountResponse:
    """Get unread notification count."""
    return UnreadCountResponse(count=await service.get_unread_count(viewer.id))


@router.post(
    "/mark-read",
    response_model=MarkReadResponse,
    summary="Mark notifications as read",
)
async def mark_notifications_read(
    body: MarkReadRequest,
    viewer: CurrentViewer,
    service: NotificationServiceDep,
) -> MarkReadResponse:
    """Mark specific notifications as read."""
    marked_count = await service.mark_as_read(viewer.id, body.notification_ids)
    return MarkReadResponse(
        marked_count=marked_count,
        unread_count=await service.get_unread_count(viewer.id),
    )


@router.post(
    "/mark-all-read",
    response_model=MarkReadResponse,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    viewer: CurrentViewer,
    service: NotificationServiceDep,
) -> MarkReadResponse:
    """Mark all notifications as read."""
    marked_count = await service.mark_all_as_read(viewer.id)
    return MarkReadResponse(
        marked_count=marked_count,
        unread_count=await service.get_unread_count(viewer.id),
    )


@router.get(
    "/settings",
    response_model=NotificationSettingsResponse,
    summary="Get notification settings",
)
async def get_notification_settings(
    viewer: CurrentViewer,
    service: NotificationServiceDep,
) -> NotificationSettingsResponse:
    """Current settings; unset users get the defaults."""
    preferences = await service.get_preferences(viewer.id)
    return NotificationSettingsResponse.from_settings(preferences)


@router.patch(
    "/settings",
    response_model=NotificationSettingsResponse,
    summary="Update notification settings",
)
async def update_notification_settings(
    body: NotificationSettingsUpdate,
    viewer: CurrentViewer,
    service: NotificationServiceDep,
) -> NotificationSettingsResponse:
    preferences = await service.update_preferences(viewer.id, body.changes())
    return NotificationSettingsResponse.from_settings(preferences)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a notification",
)
async def delete_notification(
    notification_id: UUID,
    viewer: CurrentViewer,
    service: NotificationServiceDep,
) -> None:
    if not await service.delete_notification(viewer.id, notification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )
