from typing import Any, List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, computed_field, field_validator
from pydantic_core import PydanticCustomError

from community.core.validation import bounded_text, optional_url
from community.modules.posts.services.hashtags import excerpt, extract_hashtags

TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 5000

def _title(v: Any) -> str:
    return bounded_text(
        v, min_length=1, max_length=TITLE_MAX_LENGTH,
        required="Title is required",
        too_long=f"Title must be at most {TITLE_MAX_LENGTH} characters",
    )

def _content(v: Any) -> str:
    return bounded_text(
        v, min_length=1, max_length=CONTENT_MAX_LENGTH,
        required="Content is required",
        too_long=f"Content must be at most {CONTENT_MAX_LENGTH} characters",
    )

class PostForm(BaseModel):
    """Admin form for a new post; files are handled separately"""
    model_config = ConfigDict(validate_default=True)

    title: str = ""
    content: str = ""
    external_url: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, v: Any) -> str:
        return _title(v)

    @field_validator("content", mode="before")
    @classmethod
    def check_content(cls, v: Any) -> str:
        return _content(v)

    @field_validator("external_url", mode="before")
    @classmethod
    def check_external_url(cls, v: Any) -> Optional[str]:
        return optional_url(v)

class PostUpdate(BaseModel):
    """Admin edit of an existing post; omitted fields are left as they are"""
    title: Optional[str] = None
    content: Optional[str] = None
    likes_count: Optional[int] = None

    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, v: Any) -> Optional[str]:
        return None if v is None else _title(v)

    @field_validator("content", mode="before")
    @classmethod
    def check_content(cls, v: Any) -> Optional[str]:
        return None if v is None else _content(v)

    @field_validator("likes_count")
    @classmethod
    def check_likes_count(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise PydanticCustomError("negative", "Likes count cannot be negative")
        return v

class Post(BaseModel):
    """Post model returned to client"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    author_id: str
    external_url: Optional[str] = None
    image_url: Optional[str] = None
    document_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    likes_count: int = 0

    @computed_field
    @property
    def hashtags(self) -> List[str]:
        return extract_hashtags(self.content)

    @computed_field
    @property
    def excerpt(self) -> str:
        return excerpt(self.content)
