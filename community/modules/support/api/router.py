from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, status, Query

from community.core.session import AppSession
from community.core.validation import require_valid
from community.deps import get_app_session, require_admin
from community.modules.support.schemas.support import (
    SupportForm, SupportMessage as SupportMessageSchema, SupportStatusUpdate
)
from community.modules.support.services.support import (
    get_support_message, list_support_messages, set_status, submit_support_message
)

router = APIRouter()

@router.post("", response_model=SupportMessageSchema, status_code=status.HTTP_201_CREATED)
def submit_message(form: dict, app_session: AppSession = Depends(get_app_session)) -> Any:
    """
    Contact the team. No account needed; the first invalid field is reported.
    """
    support_form = require_valid(SupportForm, form)
    return submit_support_message(app_session.db, support_form)

@router.get("", response_model=List[SupportMessageSchema])
def read_messages(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    app_session: AppSession = Depends(require_admin),
) -> Any:
    return list_support_messages(app_session.db, skip=skip, limit=limit)

@router.patch("/{message_id}", response_model=SupportMessageSchema)
def update_message_status(
    *,
    message_id: str,
    update_in: dict,
    app_session: AppSession = Depends(require_admin),
) -> Any:
    """Mark a message new, read or resolved"""
    update = require_valid(SupportStatusUpdate, update_in)
    message = get_support_message(app_session.db, message_id)
    if not message:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Message not found",
        )
    return set_status(app_session.db, message, update.status)
