import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from community.core.config import settings
from community.core.exceptions import WriteError
from community.core.security import create_access_token, verify_access_token, verify_password
from community.modules.auth.models.auth_session import AuthSession
from community.modules.auth.schemas.auth import Credentials
from community.modules.user_management.models.user import User
from community.modules.user_management.services.user import create_user, get_user, get_user_by_email

logger = logging.getLogger("app")


class EmailAlreadyRegistered(Exception):
    pass


class InvalidCredentials(Exception):
    pass


def sign_up(db: Session, credentials: Credentials) -> User:
    """Register a new account"""
    if get_user_by_email(db, credentials.email):
        raise EmailAlreadyRegistered(credentials.email)
    try:
        user = create_user(db, credentials.email, credentials.password)
    except IntegrityError as e:
        db.rollback()
        raise EmailAlreadyRegistered(credentials.email) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise WriteError("Could not create account") from e
    logger.info(f"Registered user {user.id}")
    return user


def sign_in_with_password(db: Session, credentials: Credentials) -> Tuple[User, AuthSession, str]:
    """Open a new auth session and return (user, auth session, access token)"""
    user = get_user_by_email(db, credentials.email)
    if not user or not verify_password(credentials.password, user.hashed_password):
        raise InvalidCredentials()
    if not user.is_active:
        raise InvalidCredentials()

    expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    auth_session = AuthSession(
        id=str(uuid.uuid4()),
        user_id=user.id,
        expires_at=datetime.utcnow() + expires_delta,
    )
    db.add(auth_session)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise WriteError("Could not sign in") from e

    logger.info(f"User {user.id} signed in (session {auth_session.id})")
    return user, auth_session, create_access_token(user.id, auth_session.id, expires_delta)


def get_session(db: Session, token: Optional[str]) -> Optional[Tuple[User, AuthSession]]:
    """Resolve a bearer token to its live (user, auth session), or None"""
    if not token:
        return None
    claims = verify_access_token(token)
    if not claims:
        return None
    user_id, session_id = claims

    auth_session = db.query(AuthSession).filter(AuthSession.id == session_id).first()
    if not auth_session or auth_session.user_id != user_id:
        return None
    if auth_session.expires_at < datetime.utcnow():
        return None

    user = get_user(db, user_id)
    if not user or not user.is_active:
        return None
    return user, auth_session


def sign_out(db: Session, session_id: str) -> None:
    """Delete the auth session; its tokens stop resolving immediately"""
    try:
        db.query(AuthSession).filter(AuthSession.id == session_id).delete()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise WriteError("Could not sign out") from e
    logger.info(f"Session {session_id} signed out")
