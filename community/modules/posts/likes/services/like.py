"""
Like toggling scoped to one (post, identity) pair.

A like row carries either a user id (signed-in visitor) or an anonymous
session token, never both. Lookups filter on exactly one of the two columns,
chosen by the identity kind.

The caller's belief about the current state doubles as a compare-and-swap
guard: a toggle only writes when the stored row agrees with that belief.
When it does not, nothing is written and the stored state is reported back
with a delta of 0. The unique constraints on (post_id, user_id) and
(post_id, session_id) catch the remaining race between two concurrent inserts.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from community.core.exceptions import WriteError
from community.core.optimistic import apply_after_write
from community.core.realtime import ChangeEvent, UPDATE, change_feed
from community.modules.identity.services.identity import Identity, UserIdentity
from community.modules.posts.likes.models.like import PostLike
from community.modules.posts.likes.schemas.like import LikeState, LikeToggleResponse, ToggleResult
from community.modules.posts.models.post import Post
from community.modules.posts.services.post import POSTS_TABLE

logger = logging.getLogger(__name__)

def _identity_filter(identity: Identity):
    if isinstance(identity, UserIdentity):
        return PostLike.user_id == identity.id
    return PostLike.session_id == identity.token

def get_like(db: Session, post_id: str, identity: Identity) -> Optional[PostLike]:
    """Get the like row for (post, identity)"""
    return (
        db.query(PostLike)
        .filter(PostLike.post_id == post_id, _identity_filter(identity))
        .first()
    )

def has_liked(db: Session, post_id: str, identity: Identity) -> bool:
    """Read-check for the liked flag. A failed lookup counts as not liked."""
    try:
        return get_like(db, post_id, identity) is not None
    except SQLAlchemyError as e:
        logger.warning(f"Like lookup failed for post {post_id}, treating as not liked: {e}")
        db.rollback()
        return False

def build_like(post_id: str, identity: Identity) -> PostLike:
    """New like row with only the identity's own column populated"""
    if isinstance(identity, UserIdentity):
        return PostLike(id=str(uuid.uuid4()), post_id=post_id, user_id=identity.id, session_id=None)
    return PostLike(id=str(uuid.uuid4()), post_id=post_id, user_id=None, session_id=identity.token)

def toggle_like(db: Session, post_id: str, identity: Identity, currently_liked: bool) -> ToggleResult:
    """
    Remove the like when the caller believes the post is liked, add one otherwise.

    Touches at most one like row and moves the post's likes_count by the same
    delta in the same transaction. Raises WriteError if the write fails.
    """
    try:
        existing = get_like(db, post_id, identity)
        if currently_liked:
            if existing is None:
                return ToggleResult(liked=False, delta=0)
            db.delete(existing)
            delta = -1
        else:
            if existing is not None:
                return ToggleResult(liked=True, delta=0)
            db.add(build_like(post_id, identity))
            delta = 1

        # Stored counter never drops below 0
        next_count = Post.likes_count + delta
        db.query(Post).filter(Post.id == post_id).update(
            {Post.likes_count: case((next_count < 0, 0), else_=next_count)},
            synchronize_session=False,
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if not currently_liked:
            # Another request inserted the same like first
            logger.info(f"Concurrent like on post {post_id} already recorded")
            return ToggleResult(liked=True, delta=0)
        raise WriteError("Could not update like") from e
    except SQLAlchemyError as e:
        db.rollback()
        raise WriteError("Could not update like") from e

    change_feed.publish(ChangeEvent(POSTS_TABLE, UPDATE, post_id))
    return ToggleResult(liked=not currently_liked, delta=delta)

def _next_state(state: LikeState, result: ToggleResult) -> LikeToggleResponse:
    return LikeToggleResponse(
        liked=result.liked,
        delta=result.delta,
        likes_count=max(state.likes_count + result.delta, 0),
    )

def toggle_like_state(db: Session, post_id: str, identity: Identity, state: LikeState) -> LikeToggleResponse:
    """Toggle, then derive the caller's next liked flag and counter from ``state``"""
    return apply_after_write(
        state,
        lambda: toggle_like(db, post_id, identity, state.liked),
        _next_state,
        failure_message="Could not update like",
    )
