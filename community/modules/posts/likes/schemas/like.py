from pydantic import BaseModel, ConfigDict, Field

class LikeState(BaseModel):
    """What the caller currently shows for a post: its liked flag and counter"""
    model_config = ConfigDict(frozen=True)

    liked: bool = False
    likes_count: int = Field(default=0, ge=0)

class ToggleResult(BaseModel):
    """Outcome of one toggle; delta is 0 when the stored state already matched"""
    model_config = ConfigDict(frozen=True)

    liked: bool
    delta: int

class LikeStatus(BaseModel):
    post_id: str
    liked: bool

class LikeToggleResponse(BaseModel):
    liked: bool
    delta: int
    likes_count: int
