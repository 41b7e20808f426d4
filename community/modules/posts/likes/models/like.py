from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey, CheckConstraint, UniqueConstraint

from community.db.session import Base

class PostLike(Base):
    __tablename__ = "post_likes"
    __table_args__ = (
        # A like belongs to a signed-in user or to an anonymous session, never both
        CheckConstraint(
            "(user_id IS NOT NULL AND session_id IS NULL) OR (user_id IS NULL AND session_id IS NOT NULL)",
            name="ck_post_like_single_identity",
        ),
        UniqueConstraint("post_id", "user_id", name="uq_post_like_user"),
        UniqueConstraint("post_id", "session_id", name="uq_post_like_session"),
    )

    id = Column(String, primary_key=True, index=True)
    post_id = Column(String, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    session_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
