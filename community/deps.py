from typing import Generator, Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from community.core.config import settings
from community.core.session import AppSession
from community.db.session import SessionLocal
from community.modules.auth.services.auth import get_session
from community.modules.identity.services.identity import CookieTokenStore

# Bearer token is optional: anonymous visitors can read the feed and like posts
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)

def get_db() -> Generator:
    """
    Dependency for getting DB session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_app_session(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(oauth2_scheme),
) -> AppSession:
    """
    Dependency building the request's AppSession from the bearer token and
    the anonymous session cookie
    """
    resolved = get_session(db, token)
    user, auth_session = resolved if resolved else (None, None)
    return AppSession(
        db,
        CookieTokenStore(request, response),
        user=user,
        auth_session_id=auth_session.id if auth_session else None,
    )

def require_user(app_session: AppSession = Depends(get_app_session)) -> AppSession:
    """
    Dependency for endpoints that need a signed-in user
    """
    if not app_session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return app_session

def require_admin(app_session: AppSession = Depends(require_user)) -> AppSession:
    """
    Dependency for endpoints restricted to the admin role
    """
    if not app_session.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return app_session
