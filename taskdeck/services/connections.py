from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..errors import InvalidState, NotFound
from ..models import Connection, User
from ..results import service_operation
from ..schemas import ConnectionCreate
from .common import coerce_input, user_id_of


logger = logging.getLogger("taskdeck.service.connections")


def _pair_filter(a: int, b: int):
    return or_(
        and_(Connection.user_id == a, Connection.friend_id == b),
        and_(Connection.user_id == b, Connection.friend_id == a),
    )


def connected(db: Session, user_id: int, other_id: int) -> bool:
    return db.query(Connection.id).filter(_pair_filter(int(user_id), int(other_id))).first() is not None


def connected_ids(db: Session, user_id: int) -> set[int]:
    uid = int(user_id)
    rows = db.query(Connection.user_id, Connection.friend_id).filter(
        or_(Connection.user_id == uid, Connection.friend_id == uid)
    )
    return {friend if owner == uid else owner for owner, friend in rows}


@service_operation("add connection")
def add_connection(db: Session, *, current_user: User, data: Any) -> User:
    """Connect the caller with another user by username. Idempotent."""
    payload = coerce_input(ConnectionCreate, data)
    friend = db.query(User).filter(User.username == payload.friend_username.strip()).first()
    if friend is None:
        raise NotFound(f"User {payload.friend_username} not found")
    if friend.id == current_user.id:
        raise InvalidState("You cannot connect with yourself")

    if not connected(db, user_id_of(current_user), friend.id):
        db.add(Connection(user_id=user_id_of(current_user), friend_id=friend.id))
        db.commit()
        logger.info("Connected users %s and %s", current_user.id, friend.id)
    return friend


@service_operation("fetch connections")
def get_connections(db: Session, *, current_user: User) -> list[User]:
    ids = connected_ids(db, user_id_of(current_user))
    if not ids:
        return []
    return db.query(User).filter(User.id.in_(ids)).order_by(User.username.asc()).all()


@service_operation("check connection")
def are_connected(db: Session, *, current_user: User, user_id: int) -> bool:
    return connected(db, user_id_of(current_user), user_id)
