from datetime import datetime
from pydantic import BaseModel

class User(BaseModel):
    """User model returned to client"""
    id: str
    email: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
