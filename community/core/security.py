# Implements security-related functionality:
# JWT token generation and verification (tokens carry the user id and the auth session id)
# Password hashing and verification using bcrypt
# Constant-time comparison of the shared admin access code

from datetime import datetime, timedelta
from typing import Optional, Tuple
import secrets
import logging

from jose import jwt, JWTError
from passlib.context import CryptContext

from community.core.config import settings

logger = logging.getLogger("app")

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def create_access_token(user_id: str, session_id: str, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {"exp": expire, "sub": str(user_id), "sid": str(session_id)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_access_token(token: str) -> Optional[Tuple[str, str]]:
    """Return (user_id, session_id) for a valid token, otherwise None."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        # jose also rejects expired tokens here
        logger.warning(f"JWT verification error: {e}")
        return None

    user_id = payload.get("sub")
    session_id = payload.get("sid")
    if user_id is None or session_id is None:
        logger.warning("Token payload missing 'sub' or 'sid' field")
        return None

    return user_id, session_id

def access_code_matches(candidate: str, expected: str) -> bool:
    if not expected:
        # No code configured means the gate is closed
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))
