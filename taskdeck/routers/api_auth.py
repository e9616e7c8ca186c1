from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from ..auth import authenticate_user, create_access_token, create_user, get_current_user_api
from ..db import get_db
from ..schemas import Token, UserCreate, UserOut


router = APIRouter()


@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")

    return Token(access_token=create_access_token(subject=user.username))


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def api_register(payload: UserCreate, db: Session = Depends(get_db)):
    try:
        return create_user(db, username=payload.username, password=payload.password, email=payload.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/me", response_model=UserOut)
def api_me(current_user=Depends(get_current_user_api)):
    return current_user
