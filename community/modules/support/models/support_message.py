from datetime import datetime

from sqlalchemy import Column, String, DateTime, Text

from community.db.session import Base

class SupportMessage(Base):
    __tablename__ = "support_messages"

    id = Column(String, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="new")  # new | read | resolved
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
