"""Builders shared by the test modules."""

from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from jose import jwt

from chapterhub.auth.permissions import UserRole
from chapterhub.auth.schemas import Viewer
from chapterhub.comments.models import Comment, create_comment
from chapterhub.config import get_settings


def make_viewer(role: UserRole = UserRole.USER, name: str = "Reader") -> Viewer:
    return Viewer(id=uuid4(), role=role, display_name=name)


def make_token(
    viewer: Viewer,
    expires_in: timedelta = timedelta(hours=1),
    **claims,
) -> str:
    """Sign a token shaped like the auth provider's."""
    settings = get_settings()
    payload = {
        "sub": str(viewer.id),
        "aud": settings.auth_audience,
        "exp": datetime.now(UTC) + expires_in,
        "app_metadata": {"role": viewer.role},
        "user_metadata": {"display_name": viewer.display_name},
        **claims,
    }
    return jwt.encode(
        payload, settings.auth_secret_key, algorithm=settings.auth_algorithm
    )


def auth_headers(viewer: Viewer) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(viewer)}"}


def make_comment(
    chapter_id: UUID,
    content: str = "Nice panel work this week.",
    parent_id: UUID | None = None,
    author_id: UUID | None = None,
    created_at: datetime | None = None,
    **fields,
) -> Comment:
    """Comment entity with an explicit timestamp, for ordering tests."""
    comment = create_comment(
        chapter_id=chapter_id,
        manga_id=fields.pop("manga_id", uuid4()),
        author_id=author_id or uuid4(),
        author_name=fields.pop("author_name", "Reader"),
        content=content,
        parent_id=parent_id,
    )
    if created_at is not None:
        comment.created_at = created_at
        comment.updated_at = created_at
    for name, value in fields.items():
        setattr(comment, name, value)
    return comment


def minutes_ago(minutes: int) -> datetime:
    return datetime.now(UTC) - timedelta(minutes=minutes)
