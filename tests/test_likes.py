"""
Tests for the like toggle: identity scoping, counter bookkeeping,
compare-and-swap on a stale belief and behaviour on write failure.
"""
from datetime import datetime
import logging
import uuid

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from community.core.config import settings
from community.core.exceptions import WriteError
from community.modules.identity.services.identity import AnonymousIdentity, UserIdentity
from community.modules.posts.likes.models.like import PostLike
from community.modules.posts.likes.schemas.like import LikeState
from community.modules.posts.likes.services import like as like_service
from community.modules.posts.likes.services.like import (
    build_like, has_liked, toggle_like, toggle_like_state
)
from community.modules.posts.models.post import Post

ANON = AnonymousIdentity("anon_1700000000000_abc123xyz")


@pytest.fixture
def post(db, admin):
    post = Post(id=str(uuid.uuid4()), title="Welcome", content="Hello #everyone", author_id=admin.id,
                created_at=datetime.utcnow())
    db.add(post)
    db.commit()
    return post


def _likes_count(db, post_id):
    db.expire_all()
    return db.query(Post).filter(Post.id == post_id).one().likes_count


def _fail_commit(*args, **kwargs):
    raise OperationalError("COMMIT", {}, Exception("database is locked"))


class TestBuildLike:

    def test_user_like_has_no_session(self):
        like = build_like("p1", UserIdentity("u1"))
        assert like.user_id == "u1"
        assert like.session_id is None

    def test_anonymous_like_has_no_user(self):
        like = build_like("p1", ANON)
        assert like.user_id is None
        assert like.session_id == ANON.token

    def test_both_identities_rejected(self, db, post, user):
        db.add(PostLike(id="l1", post_id=post.id, user_id=user.id, session_id=ANON.token))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_no_identity_rejected(self, db, post):
        db.add(PostLike(id="l1", post_id=post.id, user_id=None, session_id=None))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()


class TestToggleLike:

    def test_like_then_unlike(self, db, post):
        liked = toggle_like(db, post.id, ANON, currently_liked=False)
        assert (liked.liked, liked.delta) == (True, 1)
        assert has_liked(db, post.id, ANON)
        assert _likes_count(db, post.id) == 1

        unliked = toggle_like(db, post.id, ANON, currently_liked=True)
        assert (unliked.liked, unliked.delta) == (False, -1)
        assert not has_liked(db, post.id, ANON)
        assert _likes_count(db, post.id) == 0

    def test_identities_are_independent(self, db, post, user):
        toggle_like(db, post.id, ANON, currently_liked=False)
        assert not has_liked(db, post.id, UserIdentity(user.id))
        toggle_like(db, post.id, UserIdentity(user.id), currently_liked=False)
        assert _likes_count(db, post.id) == 2

    def test_stale_unlike_is_a_no_op(self, db, post):
        result = toggle_like(db, post.id, ANON, currently_liked=True)
        assert (result.liked, result.delta) == (False, 0)
        assert _likes_count(db, post.id) == 0

    def test_stale_like_is_a_no_op(self, db, post):
        toggle_like(db, post.id, ANON, currently_liked=False)
        result = toggle_like(db, post.id, ANON, currently_liked=False)
        assert (result.liked, result.delta) == (True, 0)
        assert db.query(PostLike).count() == 1
        assert _likes_count(db, post.id) == 1

    def test_lost_insert_race_reports_liked(self, db, post, monkeypatch):
        toggle_like(db, post.id, ANON, currently_liked=False)
        # The row committed by the other request is not seen by the lookup
        monkeypatch.setattr(like_service, "get_like", lambda *args: None)

        result = toggle_like(db, post.id, ANON, currently_liked=False)
        assert (result.liked, result.delta) == (True, 0)
        monkeypatch.undo()
        assert db.query(PostLike).count() == 1
        assert _likes_count(db, post.id) == 1

    def test_failed_lookup_counts_as_not_liked(self, db, post, monkeypatch, caplog):
        toggle_like(db, post.id, ANON, currently_liked=False)

        def broken_query(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("no such table"))

        monkeypatch.setattr(db, "query", broken_query)
        with caplog.at_level(logging.WARNING, logger=like_service.__name__):
            assert has_liked(db, post.id, ANON) is False
        assert any("treating as not liked" in r.getMessage() for r in caplog.records)

    def test_counter_floored_at_zero(self, db, post):
        toggle_like(db, post.id, ANON, currently_liked=False)
        # Admin edited the counter below the number of like rows
        db.query(Post).filter(Post.id == post.id).update({Post.likes_count: 0})
        db.commit()

        result = toggle_like(db, post.id, ANON, currently_liked=True)
        assert (result.liked, result.delta) == (False, -1)
        assert _likes_count(db, post.id) == 0


class TestToggleLikeState:

    def test_twice_returns_to_start(self, db, post):
        start = LikeState(liked=False, likes_count=4)
        after_first = toggle_like_state(db, post.id, ANON, start)
        assert (after_first.liked, after_first.likes_count) == (True, 5)

        second = LikeState(liked=after_first.liked, likes_count=after_first.likes_count)
        after_second = toggle_like_state(db, post.id, ANON, second)
        assert (after_second.liked, after_second.likes_count) == (start.liked, start.likes_count)

    def test_counter_never_negative(self, db, post):
        toggle_like(db, post.id, ANON, currently_liked=False)
        result = toggle_like_state(db, post.id, ANON, LikeState(liked=True, likes_count=0))
        assert result.likes_count == 0

    def test_write_failure_keeps_state(self, db, post, monkeypatch):
        state = LikeState(liked=False, likes_count=3)
        monkeypatch.setattr(db, "commit", _fail_commit)
        with pytest.raises(WriteError) as exc_info:
            toggle_like_state(db, post.id, ANON, state)
        assert exc_info.value.message == "Could not update like"
        assert state == LikeState(liked=False, likes_count=3)
        monkeypatch.undo()
        assert not has_liked(db, post.id, ANON)
        assert _likes_count(db, post.id) == 0


class TestLikeEndpoints:

    def test_anonymous_toggle_twice(self, client, post):
        url = f"{settings.API_V1_STR}/posts/{post.id}/like"
        first = client.post(url, json={"liked": False, "likes_count": 0})
        assert first.status_code == 200
        assert first.json() == {"liked": True, "delta": 1, "likes_count": 1}
        assert client.get(url).json() == {"post_id": post.id, "liked": True}

        second = client.post(url, json={"liked": True, "likes_count": 1})
        assert second.json() == {"liked": False, "delta": -1, "likes_count": 0}
        assert client.get(url).json()["liked"] is False

    def test_signed_in_like(self, client, db, post, user, user_headers):
        url = f"{settings.API_V1_STR}/posts/{post.id}/like"
        response = client.post(url, json={"liked": False, "likes_count": 0}, headers=user_headers)
        assert response.json()["liked"] is True
        assert has_liked(db, post.id, UserIdentity(user.id))

    def test_unknown_post(self, client, db):
        response = client.post(f"{settings.API_V1_STR}/posts/missing/like", json={"liked": False, "likes_count": 0})
        assert response.status_code == 404

    def test_write_failure_answers_503(self, client, db, post, monkeypatch):
        monkeypatch.setattr(Session, "commit", _fail_commit)
        response = client.post(
            f"{settings.API_V1_STR}/posts/{post.id}/like", json={"liked": False, "likes_count": 2}
        )
        monkeypatch.undo()
        assert response.status_code == 503
        assert response.json()["detail"] == "Could not update like"
        assert db.query(PostLike).count() == 0
        assert _likes_count(db, post.id) == 0
