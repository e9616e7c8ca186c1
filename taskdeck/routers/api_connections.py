from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import get_current_user_optional
from ..db import get_db
from ..schemas import ConnectionCreate, UserOut
from ..services import connections as connection_service
from .common import unwrap_or_raise


router = APIRouter()


@router.get("/", response_model=list[UserOut])
def api_list_connections(db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(connection_service.get_connections(db, current_user=current_user))


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def api_add_connection(
    payload: ConnectionCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(connection_service.add_connection(db, current_user=current_user, data=payload))


@router.get("/{user_id}")
def api_check_connection(user_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    connected = unwrap_or_raise(connection_service.are_connected(db, current_user=current_user, user_id=user_id))
    return {"user_id": user_id, "connected": connected}
