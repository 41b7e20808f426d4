from typing import Optional
import uuid

from sqlalchemy.orm import Session

from community.core.security import get_password_hash
from community.modules.user_management.models.user import User

def get_user(db: Session, user_id: str) -> Optional[User]:
    """Get user by ID"""
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get user by email"""
    return db.query(User).filter(User.email == email.lower()).first()

def create_user(db: Session, email: str, password: str) -> User:
    """Create a user with a hashed password. Caller handles IntegrityError."""
    user = User(
        id=str(uuid.uuid4()),
        email=email.lower(),
        hashed_password=get_password_hash(password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
