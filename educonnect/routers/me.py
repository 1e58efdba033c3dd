from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.models import School, User
from educonnect.schemas.accounts import MeResponse
from educonnect.security.dependencies import get_principal
from educonnect.services.subscriptions import has_active_subscription

router = APIRouter(tags=["me"])


@router.get("/me", response_model=MeResponse)
def me(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    """The caller's account, school and subscription state, read fresh from storage."""
    school = db.get(School, principal.school_id) if principal.school_id is not None else None
    return {
        "user": db.get(User, principal.id),
        "school": school,
        "has_active_subscription": (
            has_active_subscription(db, principal.school_id) if principal.school_id is not None else False
        ),
    }
