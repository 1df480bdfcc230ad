"""HTTP tests for the comment and moderation routes."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from tests.helpers import auth_headers, make_comment


@pytest.fixture
def post_comment(client: TestClient, chapter_id, manga_id):
    def _post(viewer, content="Great chapter!", **extra):
        body = {
            "chapter_id": str(chapter_id),
            "manga_id": str(manga_id),
            "content": content,
            **extra,
        }
        return client.post("/v1/comments", json=body, headers=auth_headers(viewer))

    return _post


class TestCreateComment:
    """Tests for POST /v1/comments."""

    def test_requires_token(self, client: TestClient, chapter_id, manga_id) -> None:
        response = client.post(
            "/v1/comments",
            json={
                "chapter_id": str(chapter_id),
                "manga_id": str(manga_id),
                "content": "Hello",
            },
        )

        assert response.status_code == 401

    def test_created(self, post_comment, reader) -> None:
        response = post_comment(reader)

        assert response.status_code == 201
        data = response.json()
        assert data["comment"]["content"] == "Great chapter!"
        assert data["comment"]["author"]["name"] == "Aoi"
        assert data["comment"]["reactions"]["total"] == 0
        assert data["quality_score"] == 80
        assert data["quality_badge"] == "high_quality"

    def test_rejected_content_returns_reason(self, post_comment, store, reader) -> None:
        response = post_comment(reader, content="   ")

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "content_rejected"
        assert data["reason"] == "empty"
        assert data["message"] == "Comment cannot be empty"
        assert store.comments == {}

    def test_backend_timeout_is_retryable(self, post_comment, store, reader) -> None:
        store.fail_on.add("insert_comment")

        response = post_comment(reader)

        assert response.status_code == 503
        data = response.json()
        assert data["retryable"] is True
        assert data["code"] == "backend_unavailable"

    def test_reply_to_missing_parent(self, post_comment, reader) -> None:
        response = post_comment(reader, parent_id=str(uuid4()))

        assert response.status_code == 404


class TestReadComments:
    """Tests for the listing routes."""

    def test_anonymous_listing(
        self, client: TestClient, post_comment, reader, chapter_id
    ) -> None:
        post_comment(reader)

        response = client.get(f"/v1/comments/chapter/{chapter_id}?sort=newest")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["sort"] == "newest"
        assert data["has_more"] is False
        assert data["next_page"] is None

    def test_page_size_is_capped(self, client: TestClient, chapter_id) -> None:
        response = client.get(f"/v1/comments/chapter/{chapter_id}?page_size=500")

        assert response.status_code == 422

    def test_replies_route(
        self, client: TestClient, store, chapter_id
    ) -> None:
        parent = make_comment(chapter_id)
        store.comments[parent.comment_id] = parent
        reply = make_comment(chapter_id, "Same!", parent_id=parent.comment_id)
        store.comments[reply.comment_id] = reply

        response = client.get(f"/v1/comments/{parent.comment_id}/replies")

        assert response.status_code == 200
        assert [r["content"] for r in response.json()["items"]] == ["Same!"]

    def test_deleted_comment_is_masked(
        self, client: TestClient, post_comment, reader
    ) -> None:
        comment_id = post_comment(reader).json()["comment"]["id"]

        client.delete(f"/v1/comments/{comment_id}", headers=auth_headers(reader))
        response = client.get(f"/v1/comments/{comment_id}")

        assert response.status_code == 200
        assert response.json()["content"] == "[Comment removed]"

    def test_preview_does_not_store(self, client: TestClient, store) -> None:
        response = client.post(
            "/v1/comments/moderation/preview", json={"content": "kys"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["allowed"] is False
        assert data["blocking_reason"] == "severe_content"
        assert store.comments == {}


class TestMutations:
    """Tests for edit, reactions, pin and report routes."""

    def test_edit_by_other_reader_forbidden(
        self, client: TestClient, post_comment, reader, other_reader
    ) -> None:
        comment_id = post_comment(reader).json()["comment"]["id"]

        response = client.put(
            f"/v1/comments/{comment_id}",
            json={"content": "Hijacked"},
            headers=auth_headers(other_reader),
        )

        assert response.status_code == 403

    def test_edit_marks_edited(
        self, client: TestClient, post_comment, reader
    ) -> None:
        comment_id = post_comment(reader).json()["comment"]["id"]

        response = client.put(
            f"/v1/comments/{comment_id}",
            json={"content": "Great chapter, again!"},
            headers=auth_headers(reader),
        )

        assert response.status_code == 200
        assert response.json()["is_edited"] is True

    def test_reaction_toggle(
        self, client: TestClient, post_comment, reader, other_reader
    ) -> None:
        comment_id = post_comment(reader).json()["comment"]["id"]
        url = f"/v1/comments/{comment_id}/reactions"
        headers = auth_headers(other_reader)

        added = client.post(url, json={"reaction_type": "love"}, headers=headers)
        removed = client.post(url, json={"reaction_type": "love"}, headers=headers)

        assert added.json()["change"] == "add"
        assert added.json()["reactions"]["love"] == 1
        assert added.json()["user_reaction"] == "love"
        assert removed.json()["change"] == "remove"
        assert removed.json()["reactions"]["total"] == 0

    def test_pin_needs_leader(
        self, client: TestClient, post_comment, reader, moderator, leader
    ) -> None:
        comment_id = post_comment(reader).json()["comment"]["id"]
        url = f"/v1/comments/{comment_id}/pin"

        assert client.post(url, headers=auth_headers(moderator)).status_code == 403
        response = client.post(url, headers=auth_headers(leader))
        assert response.status_code == 200
        assert response.json()["is_pinned"] is True

    def test_report_own_comment_forbidden(
        self, client: TestClient, post_comment, reader
    ) -> None:
        comment_id = post_comment(reader).json()["comment"]["id"]

        response = client.post(
            f"/v1/comments/{comment_id}/reports",
            json={"reason": "spam"},
            headers=auth_headers(reader),
        )

        assert response.status_code == 403


class TestBookmarkRoutes:
    """Tests for saving comments over HTTP."""

    def test_toggle_and_list(
        self, client: TestClient, post_comment, reader, other_reader
    ) -> None:
        comment_id = post_comment(reader).json()["comment"]["id"]
        url = f"/v1/comments/{comment_id}/bookmark"
        headers = auth_headers(other_reader)

        saved = client.post(url, headers=headers)
        status_response = client.get(url, headers=headers)
        listing = client.get("/v1/comments/bookmarks", headers=headers)
        unsaved = client.post(url, headers=headers)

        assert saved.json() == {"comment_id": comment_id, "bookmarked": True}
        assert status_response.json()["bookmarked"] is True
        assert listing.status_code == 200
        assert listing.json()["total"] == 1
        assert listing.json()["items"][0]["comment"]["id"] == comment_id
        assert unsaved.json()["bookmarked"] is False

    def test_search_and_sort_query(self, client: TestClient, reader) -> None:
        response = client.get(
            "/v1/comments/bookmarks?sort=manga&search=arc",
            headers=auth_headers(reader),
        )

        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0, "sort": "manga"}

    def test_unknown_comment(self, client: TestClient, reader) -> None:
        response = client.post(
            f"/v1/comments/{uuid4()}/bookmark", headers=auth_headers(reader)
        )

        assert response.status_code == 404

    def test_requires_token(self, client: TestClient) -> None:
        assert client.get("/v1/comments/bookmarks").status_code == 401


class TestModerationRoutes:
    """Tests for /v1/moderation."""

    def test_readers_are_forbidden(self, client: TestClient, reader) -> None:
        response = client.get("/v1/moderation/reports", headers=auth_headers(reader))

        assert response.status_code == 403

    def test_report_then_resolve(
        self,
        client: TestClient,
        post_comment,
        reader,
        other_reader,
        moderator,
        chapter_id,
    ) -> None:
        comment_id = post_comment(reader).json()["comment"]["id"]
        report = client.post(
            f"/v1/comments/{comment_id}/reports",
            json={"reason": "harassment", "description": "Rude"},
            headers=auth_headers(other_reader),
        )
        assert report.status_code == 201
        report_id = report.json()["id"]

        queue = client.get(
            "/v1/moderation/reports?status=pending", headers=auth_headers(moderator)
        )
        resolved = client.post(
            f"/v1/moderation/reports/{report_id}/resolve",
            json={"action": "hide"},
            headers=auth_headers(moderator),
        )
        again = client.post(
            f"/v1/moderation/reports/{report_id}/dismiss",
            json={},
            headers=auth_headers(moderator),
        )
        listing = client.get(f"/v1/comments/chapter/{chapter_id}")

        assert [r["id"] for r in queue.json()["items"]] == [report_id]
        assert resolved.json()["status"] == "resolved"
        assert again.status_code == 409
        assert listing.json()["total"] == 0

    def test_ban_lifecycle(
        self, client: TestClient, post_comment, reader, moderator
    ) -> None:
        headers = auth_headers(moderator)

        created = client.post(
            "/v1/moderation/bans",
            json={"user_id": str(reader.id), "reason": "Spam", "duration_days": 7},
            headers=headers,
        )
        duplicate = client.post(
            "/v1/moderation/bans",
            json={"user_id": str(reader.id), "reason": "Spam"},
            headers=headers,
        )
        blocked = post_comment(reader, content="Can I still post?")
        status_response = client.get(
            f"/v1/moderation/users/{reader.id}/ban", headers=headers
        )
        lifted = client.delete(
            f"/v1/moderation/bans/{created.json()['id']}", headers=headers
        )

        assert created.status_code == 201
        assert created.json()["in_force"] is True
        assert duplicate.status_code == 409
        assert blocked.status_code == 403
        assert blocked.json()["code"] == "user_banned"
        assert status_response.json()["is_banned"] is True
        assert lifted.json()["is_active"] is False

    def test_terms(self, client: TestClient, moderator) -> None:
        headers = auth_headers(moderator)

        added = client.post(
            "/v1/moderation/terms",
            json={"term": " Spoilerbait ", "severity": "severe"},
            headers=headers,
        )
        listed = client.get("/v1/moderation/terms", headers=headers)
        removed = client.delete("/v1/moderation/terms/spoilerbait", headers=headers)

        assert added.status_code == 201
        assert added.json()["term"] == "spoilerbait"
        assert [t["term"] for t in listed.json()] == ["spoilerbait"]
        assert removed.status_code == 200
