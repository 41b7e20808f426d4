from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey

from community.db.session import Base

class Post(Base):
    __tablename__ = "posts"

    id = Column(String, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    author_id = Column(String, ForeignKey("users.id"), nullable=False)
    external_url = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    document_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Display-only cache of the post_likes row count, kept in step by the like toggle
    likes_count = Column(Integer, nullable=False, default=0)
