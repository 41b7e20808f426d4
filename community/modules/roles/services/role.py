import logging
import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from community.core.config import settings
from community.core.exceptions import AdminCodeError, WriteError
from community.core.security import access_code_matches
from community.modules.roles.models.user_role import UserRole, ADMIN_ROLE

logger = logging.getLogger("app")

def has_role(db: Session, user_id: str, role: str) -> bool:
    """Check whether the user holds ``role``"""
    return (
        db.query(UserRole.id)
        .filter(UserRole.user_id == user_id, UserRole.role == role)
        .first()
        is not None
    )

def is_admin(db: Session, user_id: str) -> bool:
    return has_role(db, user_id, ADMIN_ROLE)

def grant_role(db: Session, user_id: str, role: str) -> UserRole:
    """Grant ``role``; granting a role the user already holds is a no-op"""
    existing = (
        db.query(UserRole)
        .filter(UserRole.user_id == user_id, UserRole.role == role)
        .first()
    )
    if existing:
        return existing

    user_role = UserRole(id=str(uuid.uuid4()), user_id=user_id, role=role)
    db.add(user_role)
    try:
        db.commit()
    except IntegrityError:
        # Granted concurrently
        db.rollback()
        return (
            db.query(UserRole)
            .filter(UserRole.user_id == user_id, UserRole.role == role)
            .one()
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise WriteError("Could not grant access") from e
    db.refresh(user_role)
    return user_role

def grant_admin_with_code(db: Session, user_id: str, admin_code: str) -> UserRole:
    """
    Grant the admin role when ``admin_code`` matches the shared access code.

    The code is one static secret shared by every admin; it is not tied to
    any user. Raises AdminCodeError on a mismatch.
    """
    if not access_code_matches(admin_code or "", settings.ADMIN_ACCESS_CODE):
        logger.warning(f"Rejected admin code attempt for user {user_id}")
        raise AdminCodeError()

    logger.info(f"Granting admin role to user {user_id}")
    return grant_role(db, user_id, ADMIN_ROLE)
