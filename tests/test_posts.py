"""Tests for the posts feed, admin authoring and media uploads."""
from datetime import datetime, timedelta
import logging
import uuid

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from community.core import realtime
from community.core.config import settings
from community.modules.posts.likes.models.like import PostLike
from community.modules.posts.models.post import Post
from community.modules.posts.services import post as post_service
from community.modules.posts.services.post import DeletionNotConfirmed, delete_post, load_posts

POSTS_URL = f"{settings.API_V1_STR}/posts"


def add_post(db, author_id, title, created_at, content="Body"):
    post = Post(id=str(uuid.uuid4()), title=title, content=content, author_id=author_id, created_at=created_at)
    db.add(post)
    db.commit()
    return post


class TestFeed:

    def test_newest_first(self, client, db, admin):
        now = datetime.utcnow()
        add_post(db, admin.id, "P1", now - timedelta(minutes=5))
        add_post(db, admin.id, "P2", now)

        response = client.get(POSTS_URL)
        assert response.status_code == 200
        assert [p["title"] for p in response.json()] == ["P2", "P1"]

    def test_open_to_anonymous_visitors(self, client, db):
        response = client.get(POSTS_URL)
        assert response.status_code == 200
        assert response.json() == []

    def test_paging_with_before(self, client, db, admin):
        now = datetime.utcnow()
        for i in range(5):
            add_post(db, admin.id, f"P{i}", now - timedelta(minutes=5 - i))

        first_page = client.get(POSTS_URL, params={"limit": 2}).json()
        assert [p["title"] for p in first_page] == ["P4", "P3"]

        next_page = client.get(POSTS_URL, params={"limit": 2, "before": first_page[-1]["created_at"]}).json()
        assert [p["title"] for p in next_page] == ["P2", "P1"]

    def test_hashtags_and_excerpt(self, client, db, admin):
        post = add_post(db, admin.id, "Tagged", datetime.utcnow(), content="Open day on Friday #events #campus")
        body = client.get(f"{POSTS_URL}/{post.id}").json()
        assert body["hashtags"] == ["#events", "#campus"]
        assert body["excerpt"] == "Open day on Friday"

    def test_missing_post(self, client, db):
        assert client.get(f"{POSTS_URL}/nope").status_code == 404


class TestCreatePost:

    def test_admin_publishes(self, client, admin_headers, monkeypatch):
        published = []
        monkeypatch.setattr(realtime.change_feed, "publish", published.append)

        response = client.post(
            POSTS_URL,
            data={"title": "Welcome", "content": "First post #hello", "external_url": "https://example.com"},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["title"] == "Welcome"
        assert body["likes_count"] == 0
        assert body["external_url"] == "https://example.com"
        assert body["image_url"] is None
        assert [(e.table, e.event_type, e.record_id) for e in published] == [("posts", "INSERT", body["id"])]

    def test_with_image_and_document(self, client, admin_headers):
        response = client.post(
            POSTS_URL,
            data={"title": "Flyer", "content": "See attached"},
            files={
                "image": ("flyer.png", b"\x89PNG fake image", "image/png"),
                "document": ("agenda.pdf", b"%PDF-1.4 fake", "application/pdf"),
            },
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        body = response.json()
        media_prefix = f"http://testserver{settings.API_V1_STR}/media/"
        assert body["image_url"].startswith(media_prefix + "images/")
        assert body["image_url"].endswith(".png")
        assert body["document_url"].startswith(media_prefix + "documents/")

        media = client.get(body["image_url"].replace("http://testserver", ""))
        assert media.status_code == 200
        assert media.content == b"\x89PNG fake image"
        assert media.headers["content-type"] == "image/png"

    def test_title_boundary(self, client, admin_headers):
        ok = client.post(POSTS_URL, data={"title": "t" * 200, "content": "c"}, headers=admin_headers)
        assert ok.status_code == 201

        too_long = client.post(POSTS_URL, data={"title": "t" * 201, "content": "c"}, headers=admin_headers)
        assert too_long.status_code == 422
        assert too_long.json()["detail"] == "Title must be at most 200 characters"

    def test_invalid_form_uploads_nothing(self, client, admin_headers, storage):
        response = client.post(
            POSTS_URL,
            data={"title": "", "content": "c"},
            files={"image": ("a.png", b"data", "image/png")},
            headers=admin_headers,
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Title is required"
        assert not storage.local_root.exists()

    def test_upload_size_boundary(self, client, admin_headers, storage, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 16)

        at_limit = client.post(
            POSTS_URL,
            data={"title": "t", "content": "c"},
            files={"image": ("a.png", b"x" * 16, "image/png")},
            headers=admin_headers,
        )
        assert at_limit.status_code == 201, at_limit.text

        over_limit = client.post(
            POSTS_URL,
            data={"title": "t", "content": "c"},
            files={
                "image": ("b.png", b"x" * 16, "image/png"),
                "document": ("big.pdf", b"x" * 17, "application/pdf"),
            },
            headers=admin_headers,
        )
        assert over_limit.status_code == 422
        body = over_limit.json()
        assert body["detail"] == "File must be at most 16 bytes"
        assert [e["field"] for e in body["errors"]] == ["document"]
        # Only the first post's image reached storage
        assert len(list((storage.local_root / "images").iterdir())) == 1
        assert not (storage.local_root / "documents").exists()

    def test_insert_failure_logs_orphaned_upload(self, client, admin_headers, storage, monkeypatch, caplog):
        def failing_commit(*args, **kwargs):
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(Session, "commit", failing_commit)
        with caplog.at_level(logging.WARNING, logger=post_service.__name__):
            response = client.post(
                POSTS_URL,
                data={"title": "t", "content": "c"},
                files={"image": ("a.png", b"image bytes", "image/png")},
                headers=admin_headers,
            )
        monkeypatch.undo()

        assert response.status_code == 503
        assert response.json()["detail"] == "Could not publish post"
        stored = list((storage.local_root / "images").iterdir())
        assert len(stored) == 1
        orphan_logs = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING and "orphaned" in r.getMessage()]
        assert orphan_logs
        assert f"images/{stored[0].name}" in orphan_logs[0]

    def test_invalid_url(self, client, admin_headers):
        response = client.post(
            POSTS_URL, data={"title": "t", "content": "c", "external_url": "not a url"}, headers=admin_headers
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Invalid URL"

    def test_requires_sign_in(self, client, db):
        response = client.post(POSTS_URL, data={"title": "t", "content": "c"})
        assert response.status_code == 401

    def test_requires_admin(self, client, user_headers):
        response = client.post(POSTS_URL, data={"title": "t", "content": "c"}, headers=user_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"


class TestEditAndDelete:

    @pytest.fixture
    def post(self, db, admin):
        return add_post(db, admin.id, "Original", datetime.utcnow())

    def test_update(self, client, post, admin_headers):
        response = client.put(f"{POSTS_URL}/{post.id}", json={"title": "Edited", "likes_count": 7}, headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert (body["title"], body["content"], body["likes_count"]) == ("Edited", "Body", 7)

    def test_negative_likes_count_rejected(self, client, post, admin_headers):
        response = client.put(f"{POSTS_URL}/{post.id}", json={"likes_count": -1}, headers=admin_headers)
        assert response.status_code == 422
        assert response.json()["detail"] == "Likes count cannot be negative"

    def test_delete_requires_confirmation(self, client, db, post, admin_headers):
        response = client.delete(f"{POSTS_URL}/{post.id}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Deletion must be confirmed"
        assert load_posts(db)

    def test_delete_removes_likes(self, client, db, post, admin_headers):
        db.add(PostLike(id="l1", post_id=post.id, session_id="anon_1_abc"))
        db.commit()

        response = client.delete(f"{POSTS_URL}/{post.id}", params={"confirm": "true"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["title"] == "Original"
        db.expire_all()
        assert load_posts(db) == []
        assert db.query(PostLike).count() == 0

    def test_service_refuses_unconfirmed(self, db, post):
        with pytest.raises(DeletionNotConfirmed):
            delete_post(db, post)


class TestLiveFeed:

    def test_snapshot_then_reload(self, client, db, admin):
        with client.websocket_connect(f"{POSTS_URL}/live") as websocket:
            first = websocket.receive_json()
            assert first == {"type": "posts", "posts": []}
            assert realtime.change_feed.subscriber_count("posts") == 1

            post = add_post(db, admin.id, "Breaking", datetime.utcnow())
            realtime.change_feed.publish(realtime.ChangeEvent("posts", realtime.INSERT, post.id))

            second = websocket.receive_json()
            assert [p["title"] for p in second["posts"]] == ["Breaking"]

        assert realtime.change_feed.subscriber_count("posts") == 0
