from fastapi import APIRouter, Depends, HTTPException, status, Path

from community.core.session import AppSession
from community.deps import get_app_session
from community.modules.posts.services.post import get_post
from community.modules.posts.likes.schemas.like import LikeState, LikeStatus, LikeToggleResponse
from community.modules.posts.likes.services.like import has_liked, toggle_like_state

router = APIRouter()

def _validate_post(app_session: AppSession, post_id: str) -> None:
    """Validate post exists or raise HTTPException"""
    if not get_post(app_session.db, post_id=post_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )

@router.get("", response_model=LikeStatus)
def read_like_status(
    *,
    post_id: str = Path(..., description="The ID of the post"),
    app_session: AppSession = Depends(get_app_session),
):
    """Whether the current visitor (signed in or anonymous) likes the post"""
    _validate_post(app_session, post_id)
    return LikeStatus(post_id=post_id, liked=has_liked(app_session.db, post_id, app_session.identity))

@router.post("", response_model=LikeToggleResponse)
def toggle_post_like(
    *,
    post_id: str = Path(..., description="The ID of the post to like or unlike"),
    state: LikeState,
    app_session: AppSession = Depends(get_app_session),
):
    """
    Toggle the visitor's like. The body is the caller's current view of the
    post (liked flag and counter); the response is the view to show next.
    A failed write answers 503 and the caller keeps its current view.
    """
    _validate_post(app_session, post_id)
    return toggle_like_state(app_session.db, post_id, app_session.identity, state)
