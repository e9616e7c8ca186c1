from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .config import get_settings
from .db import get_db
from .models import User


# PBKDF2-SHA256 is implemented fully in passlib (no native bcrypt dependency).
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__rounds=200_000,
)

# auto_error=False: a missing token yields None and the service layer answers
# with Unauthenticated.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)

logger = logging.getLogger("taskdeck.auth")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    e = str(email).strip().lower()
    return e or None


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def create_user(db: Session, *, username: str, password: str, email: str | None = None) -> User:
    uname = (username or "").strip()
    if not uname:
        raise ValueError("Username is required")
    if len(password or "") < 8:
        raise ValueError("Password must be at least 8 characters")
    if get_user_by_username(db, uname):
        raise ValueError("Username already exists")

    user = User(username=uname, email=normalize_email(email), hashed_password=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (id=%s)", user.username, user.id)
    return user


def authenticate_user(db: Session, username_or_email: str, password: str) -> Optional[User]:
    ident = (username_or_email or "").strip()
    if not ident:
        return None

    user = (
        db.query(User)
        .filter(or_(User.username == ident, func.lower(User.email) == ident.lower()))
        .first()
    )
    if not user or not verify_password(password, user.hashed_password):
        logger.info("Failed login for %r", ident)
        return None
    return user


def create_access_token(*, subject: str, expires_minutes: int | None = None) -> str:
    settings = get_settings()
    minutes = expires_minutes if expires_minutes is not None else settings.security.token_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=int(minutes))
    return jwt.encode({"sub": subject, "exp": expire}, settings.security.jwt_secret, algorithm="HS256")


def _decode_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(token, settings.security.jwt_secret, algorithms=["HS256"])


def get_current_user_optional(
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(oauth2_scheme),
) -> Optional[User]:
    """Resolve the bearer token to a user, or None when there is no valid session."""
    if not token:
        return None
    try:
        username = _decode_token(token).get("sub")
    except JWTError:
        return None
    if not username:
        return None
    return get_user_by_username(db, str(username))


def get_current_user_api(current_user: Optional[User] = Depends(get_current_user_optional)) -> User:
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_user
