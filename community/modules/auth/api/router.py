"""Authentication router: password sign-up/sign-in, sign-out, session and admin code"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Response

from community.core.session import AppSession
from community.core.validation import require_valid
from community.deps import get_app_session, require_user
from community.modules.auth.schemas.auth import (
    AdminCodeRequest, AdminCodeResult, Credentials, SessionInfo, Token
)
from community.modules.auth.services.auth import (
    EmailAlreadyRegistered, InvalidCredentials, sign_in_with_password, sign_out, sign_up
)
from community.modules.roles.services.role import grant_admin_with_code
from community.modules.user_management.schemas.user import User as UserSchema

router = APIRouter()
logger = logging.getLogger("app")

def _log_session_change(event: str, app_session: AppSession) -> None:
    user_id = app_session.user.id if app_session.user else None
    logger.info(f"Auth state change: {event} (user={user_id}, admin={app_session.is_admin})")

@router.post("/signup", response_model=UserSchema, status_code=status.HTTP_201_CREATED)
def signup(form: dict, app_session: AppSession = Depends(get_app_session)):
    """Create an account. The client signs in separately afterwards."""
    credentials = require_valid(Credentials, form)
    try:
        return sign_up(app_session.db, credentials)
    except EmailAlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This email is already registered",
        )

@router.post("/login", response_model=Token)
def login(form: dict, app_session: AppSession = Depends(get_app_session)):
    """Sign in with email and password"""
    credentials = require_valid(Credentials, form)
    try:
        user, auth_session, access_token = sign_in_with_password(app_session.db, credentials)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    unsubscribe = app_session.subscribe(_log_session_change)
    app_session.set_user(user, auth_session.id)
    unsubscribe()
    return Token(access_token=access_token)

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(app_session: AppSession = Depends(require_user)):
    """End the current session"""
    sign_out(app_session.db, app_session.auth_session_id)
    unsubscribe = app_session.subscribe(_log_session_change)
    app_session.set_user(None)
    unsubscribe()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/session", response_model=SessionInfo)
def read_session(app_session: AppSession = Depends(get_app_session)):
    """Current user (or null), admin flag and the identity used for likes"""
    return SessionInfo(
        user=UserSchema.model_validate(app_session.user) if app_session.user else None,
        is_admin=app_session.is_admin,
        identity=app_session.identity.to_dict(),
    )

@router.post("/admin-code", response_model=AdminCodeResult)
def submit_admin_code(
    request_in: AdminCodeRequest,
    app_session: AppSession = Depends(require_user),
):
    """
    Grant the admin role to the signed-in user when the shared access code
    matches. A wrong code answers 403 "Incorrect code".
    """
    grant_admin_with_code(app_session.db, app_session.user.id, request_in.admin_code)
    app_session.refresh_admin()
    return AdminCodeResult(granted=app_session.is_admin)
