"""Shared fixtures for the chapterhub test suite."""

from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from chapterhub.auth.permissions import UserRole
from chapterhub.auth.schemas import Viewer
from chapterhub.comments.reports import ModerationService
from chapterhub.comments.service import CommentService
from chapterhub.config import Settings
from chapterhub.notifications.service import NotificationService

from tests.fakes import FakeCommentStore
from tests.helpers import make_viewer


@pytest.fixture
def settings() -> Settings:
    """Settings with the shipped defaults."""
    return Settings(environment="testing")


@pytest.fixture
def store() -> FakeCommentStore:
    """In-memory comment store."""
    return FakeCommentStore()


@pytest.fixture
def notifications() -> AsyncMock:
    """Mock notification service; every notify_* call is awaitable."""
    return AsyncMock(spec=NotificationService)


@pytest.fixture
def comment_service(
    store: FakeCommentStore, settings: Settings, notifications: AsyncMock
) -> CommentService:
    """CommentService without Redis."""
    return CommentService(store, settings=settings, notifications=notifications)


@pytest.fixture
def moderation_service(
    store: FakeCommentStore,
    comment_service: CommentService,
    settings: Settings,
    notifications: AsyncMock,
) -> ModerationService:
    """ModerationService sharing the comment service's store."""
    return ModerationService(
        store, comment_service, settings=settings, notifications=notifications
    )


@pytest.fixture
def reader() -> Viewer:
    return make_viewer(name="Aoi")


@pytest.fixture
def other_reader() -> Viewer:
    return make_viewer(name="Ren")


@pytest.fixture
def moderator() -> Viewer:
    """Elite fighter: moderates, deletes and bans, cannot pin."""
    return make_viewer(UserRole.ELITE_FIGHTER, "Mod")


@pytest.fixture
def leader() -> Viewer:
    return make_viewer(UserRole.LEADER, "Leader")


@pytest.fixture
def admin() -> Viewer:
    return make_viewer(UserRole.ADMIN, "Admin")


@pytest.fixture
def chapter_id() -> UUID:
    return uuid4()


@pytest.fixture
def manga_id() -> UUID:
    return uuid4()


@pytest.fixture
def client(
    store: FakeCommentStore,
    comment_service: CommentService,
    moderation_service: ModerationService,
) -> TestClient:
    """API client with services wired to the in-memory store.

    The lifespan is not entered, so no database or Redis connection is made.
    """
    from chapterhub.main import create_app

    app = create_app()
    app.state.comment_service = comment_service
    app.state.moderation_service = moderation_service
    app.state.redis = None
    return TestClient(app)
