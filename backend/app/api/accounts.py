"""Practitioner sign-up, sign-in and profile routes.

Every patient and session belongs to the account that created it, so these
routes are the only ones reachable without a bearer token.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.app.core.security import create_access_token, get_password_hash, verify_password
from backend.app.db.session import get_db
from backend.app.db.storage import commit_or_raise, read_with_retry
from backend.app.dependencies.auth import get_current_user
from backend.app.models.user import User
from backend.app.schemas.account import AccessToken, AccountCreate, AccountCredentials, AccountRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

DUPLICATE_ACCOUNT_MESSAGE = "An account with this email already exists"
BAD_CREDENTIALS_MESSAGE = "Incorrect email or password"
DISABLED_ACCOUNT_MESSAGE = "Account is disabled"


def _account_by_email(db: Session, email: str) -> User | None:
    return read_with_retry(db, lambda: db.query(User).filter(User.email == email).first())


@router.post("/register", response_model=AccountRead)
def open_account(payload: AccountCreate, db: Session = Depends(get_db)):
    if _account_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_ACCOUNT_MESSAGE)
    account = User(
        email=payload.email,
        full_name=(payload.full_name or "").strip() or None,
        hashed_password=get_password_hash(payload.password),
    )
    db.add(account)
    commit_or_raise(db)
    db.refresh(account)
    logger.info("Opened account %s", account.id)
    return account


@router.post("/login", response_model=AccessToken)
def sign_in(payload: AccountCredentials, db: Session = Depends(get_db)):
    account = _account_by_email(db, payload.email)
    # Unknown email and wrong password are indistinguishable to the caller.
    if not account or not account.hashed_password or not verify_password(payload.password, account.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=BAD_CREDENTIALS_MESSAGE)
    if not account.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DISABLED_ACCOUNT_MESSAGE)
    return AccessToken(access_token=create_access_token(user_id=account.id))


@router.get("/me", response_model=AccountRead)
def current_account(account: User = Depends(get_current_user)):
    return account
