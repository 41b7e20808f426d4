from typing import Any, List, Optional
from datetime import datetime
import asyncio
import logging

from fastapi import (
    APIRouter, Depends, HTTPException, status, UploadFile, File, Form, Query,
    WebSocket, WebSocketDisconnect,
)
from fastapi.encoders import jsonable_encoder

from community.core.config import settings
from community.core.session import AppSession
from community.core.storage import R2Storage, get_storage
from community.core.optimistic import apply_after_write
from community.core.validation import require_valid
from community.deps import get_app_session, require_admin
from community.modules.posts.schemas.post import Post as PostSchema, PostForm, PostUpdate
from community.modules.posts.services.feed import FeedLoader, get_feed_loader
from community.modules.posts.services.post import (
    DeletionNotConfirmed, check_upload_sizes, get_post, load_posts, create_post, update_post, delete_post
)

# Get the logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="")

def _get_post_or_404(app_session: AppSession, post_id: str):
    post = get_post(app_session.db, post_id=post_id)
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )
    return post

@router.get("", response_model=List[PostSchema])
def read_posts(
    app_session: AppSession = Depends(get_app_session),
    before: Optional[datetime] = Query(None, description="Only posts created before this instant"),
    limit: Optional[int] = Query(None, ge=1, le=200),
) -> Any:
    """
    Published posts, newest first. Open to everyone, signed in or not.
    """
    return load_posts(app_session.db, before=before, limit=limit)

@router.post("", response_model=PostSchema, status_code=status.HTTP_201_CREATED)
async def create_new_post(
    *,
    app_session: AppSession = Depends(require_admin),
    storage: R2Storage = Depends(get_storage),
    title: str = Form(""),
    content: str = Form(""),
    external_url: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    document: Optional[UploadFile] = File(None),
) -> Any:
    """
    Publish a post with an optional image and document.
    The form is validated before anything is uploaded.
    """
    form = require_valid(PostForm, {"title": title, "content": content, "external_url": external_url})
    await check_upload_sizes(settings.MAX_UPLOAD_SIZE, image=image, document=document)
    return await create_post(
        app_session.db, storage, form, app_session.user.id, image=image, document=document
    )

@router.get("/{post_id}", response_model=PostSchema)
def read_post_by_id(
    *,
    post_id: str,
    app_session: AppSession = Depends(get_app_session),
) -> Any:
    """
    Get post by ID.
    """
    return _get_post_or_404(app_session, post_id)

@router.put("/{post_id}", response_model=PostSchema)
def update_post_by_id(
    *,
    post_id: str,
    post_in: dict,
    app_session: AppSession = Depends(require_admin),
) -> Any:
    """
    Edit title, content or the likes counter of a post.
    """
    post = _get_post_or_404(app_session, post_id)
    changes = require_valid(PostUpdate, post_in)
    # On failure the client keeps showing the post as it was
    return apply_after_write(
        PostSchema.model_validate(post),
        lambda: update_post(app_session.db, post, changes),
        lambda _previous, updated: PostSchema.model_validate(updated),
        failure_message="Could not update post",
    )

@router.delete("/{post_id}", response_model=PostSchema)
def delete_post_by_id(
    *,
    post_id: str,
    confirm: bool = Query(False, description="Must be true; deletion cannot be undone"),
    app_session: AppSession = Depends(require_admin),
) -> Any:
    """
    Delete a post together with its likes. The post is returned as it was.
    """
    post = _get_post_or_404(app_session, post_id)
    snapshot = PostSchema.model_validate(post)
    try:
        delete_post(app_session.db, post, confirmed=confirm)
    except DeletionNotConfirmed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Deletion must be confirmed",
        )
    return snapshot

@router.websocket("/live")
async def live_posts(websocket: WebSocket, loader: FeedLoader = Depends(get_feed_loader)):
    """
    Push the full feed on connect and again after every change to posts.
    Each message is {"type": "posts", "posts": [...]}.
    """
    await websocket.accept()
    async with loader.live() as snapshots:
        async def forward() -> None:
            async for posts in snapshots:
                await websocket.send_json({"type": "posts", "posts": jsonable_encoder(posts)})

        async def listen() -> None:
            # Client messages are ignored; returns once the client goes away
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    return

        tasks = [asyncio.create_task(forward()), asyncio.create_task(listen())]
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error(f"Live feed connection failed: {exc}")
    logger.debug("Live feed subscriber disconnected")
