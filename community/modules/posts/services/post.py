from typing import List, Optional
from datetime import datetime
import uuid
import logging

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from community.core.exceptions import FieldViolation, FormValidationError, WriteError
from community.core.realtime import ChangeEvent, INSERT, UPDATE, DELETE, change_feed
from community.core.storage import R2Storage
from community.modules.posts.models.post import Post
from community.modules.posts.likes.models.like import PostLike
from community.modules.posts.schemas.post import PostForm, PostUpdate

logger = logging.getLogger(__name__)

POSTS_TABLE = "posts"


class DeletionNotConfirmed(Exception):
    pass


def get_post(db: Session, post_id: str) -> Optional[Post]:
    """Get post by ID"""
    return db.query(Post).filter(Post.id == post_id).first()

def load_posts(db: Session, before: Optional[datetime] = None, limit: Optional[int] = None) -> List[Post]:
    """
    Published posts, newest first.

    With no arguments this is the whole feed. ``before`` (the created_at of
    the last post already seen) and ``limit`` page through it.
    """
    query = db.query(Post)
    if before is not None:
        query = query.filter(Post.created_at < before)
    query = query.order_by(Post.created_at.desc(), Post.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()

def _has_upload(file: Optional[UploadFile]) -> bool:
    # Browsers send an empty part when no file was chosen
    return file is not None and bool(file.filename)

def _describe_size(size: int) -> str:
    if size >= 1024 * 1024 and size % (1024 * 1024) == 0:
        return f"{size // (1024 * 1024)} MB"
    return f"{size} bytes"

async def check_upload_sizes(max_size: int, **files: Optional[UploadFile]) -> None:
    """
    Reject attachments larger than ``max_size`` bytes, one violation per
    offending field. Runs before anything is uploaded.
    """
    violations = []
    for field, file in files.items():
        if not _has_upload(file):
            continue
        size = file.size
        if size is None:
            size = len(await file.read())
            await file.seek(0)
        if size > max_size:
            violations.append(FieldViolation(field, f"File must be at most {_describe_size(max_size)}"))
    if violations:
        raise FormValidationError(violations)

async def create_post(
    db: Session,
    storage: R2Storage,
    form: PostForm,
    author_id: str,
    image: Optional[UploadFile] = None,
    document: Optional[UploadFile] = None,
) -> Post:
    """
    Upload the attached files, then insert the post referencing their public URLs.

    ``form`` must already be validated. Uploaded objects are not removed when
    a later step fails; their keys are logged as orphaned.
    """
    uploaded_keys = []
    urls = {}
    try:
        for kind, file in (("image", image), ("document", document)):
            if not _has_upload(file):
                continue
            key = await storage.upload(file, kind)
            uploaded_keys.append(key)
            urls[f"{kind}_url"] = storage.get_public_url(key)
    except WriteError:
        if uploaded_keys:
            logger.warning(f"Upload failed; orphaned objects: {uploaded_keys}")
        raise

    post = Post(
        id=str(uuid.uuid4()),
        author_id=author_id,
        title=form.title,
        content=form.content,
        external_url=form.external_url,
        **urls,
    )
    db.add(post)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        if uploaded_keys:
            logger.warning(f"Post insert failed; orphaned objects: {uploaded_keys}")
        raise WriteError("Could not publish post") from e
    db.refresh(post)

    logger.info(f"Created post {post.id} by {author_id}")
    change_feed.publish(ChangeEvent(POSTS_TABLE, INSERT, post.id))
    return post

def update_post(db: Session, post: Post, changes: PostUpdate) -> Post:
    """Apply the fields set on ``changes`` (title, content, likes_count)"""
    logger.info(f"Updating post with ID: {post.id}")
    for field, value in changes.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(post, field, value)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise WriteError("Could not update post") from e
    db.refresh(post)

    change_feed.publish(ChangeEvent(POSTS_TABLE, UPDATE, post.id))
    return post

def delete_post(db: Session, post: Post, confirmed: bool = False) -> Post:
    """
    Delete post and its likes. Refuses unless the caller has confirmed.
    """
    if not confirmed:
        raise DeletionNotConfirmed(post.id)

    logger.info(f"Deleting post with ID: {post.id}")
    post_id = post.id
    try:
        db.query(PostLike).filter(PostLike.post_id == post_id).delete(synchronize_session=False)
        db.delete(post)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise WriteError("Could not delete post") from e

    change_feed.publish(ChangeEvent(POSTS_TABLE, DELETE, post_id))
    return post
