from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey

from community.db.session import Base

class AuthSession(Base):
    """A signed-in session. Signing out deletes the row, which invalidates its tokens."""
    __tablename__ = "auth_sessions"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)
