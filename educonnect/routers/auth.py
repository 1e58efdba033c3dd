from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from educonnect.db.session import get_db
from educonnect.identity import TokenConfig
from educonnect.schemas.accounts import LoginRequest, RegisterRequest, TokenResponse
from educonnect.security.dependencies import get_token_config
from educonnect.services import accounts

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    token_config: TokenConfig = Depends(get_token_config),
):
    result = accounts.register_school_admin(db, token_config, **payload.model_dump())
    return {"access_token": result.token, "user": result.user}


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    token_config: TokenConfig = Depends(get_token_config),
):
    result = accounts.authenticate(db, token_config, email=payload.email, password=payload.password)
    return {"access_token": result.token, "user": result.user}
