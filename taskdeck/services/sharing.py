from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy.orm import Session

from ..constants import UNSHAREABLE_TEMPLATE_TYPES
from ..errors import Forbidden, NotFound
from ..models import Board, BoardMember, MemberRole, User
from ..results import service_operation
from ..schemas import MemberRoleUpdate, ShareRequest
from .common import coerce_input, get_owned_board, user_id_of
from .connections import connected_ids


logger = logging.getLogger("taskdeck.service.sharing")


def _get_member(db: Session, board_id: int, user_id: int) -> BoardMember:
    member = (
        db.query(BoardMember)
        .filter(BoardMember.board_id == int(board_id), BoardMember.user_id == int(user_id))
        .first()
    )
    if member is None:
        raise NotFound(f"User {user_id} is not a member of board {board_id}")
    return member


@service_operation("share board")
def share_board(
    db: Session,
    *,
    current_user: User,
    board_id: int,
    user_ids: Sequence[int],
    role: Any = MemberRole.viewer,
) -> list[BoardMember]:
    """Share an owned board with connections, upserting on (board, user)."""
    payload = ShareRequest(user_ids=list(user_ids), role=role)
    board = get_owned_board(db, current_user, board_id)

    if board.template_type in UNSHAREABLE_TEMPLATE_TYPES:
        raise Forbidden(f"{board.template_type} boards cannot be shared")

    owner_id = user_id_of(current_user)
    targets = list(dict.fromkeys(int(u) for u in payload.user_ids))
    if owner_id in targets:
        raise Forbidden("You cannot share a board with yourself")

    friends = connected_ids(db, owner_id)
    strangers = [u for u in targets if u not in friends]
    if strangers:
        raise Forbidden(f"Can only share with connections; not connected to user(s): {', '.join(map(str, strangers))}")

    existing = {
        m.user_id: m
        for m in db.query(BoardMember).filter(BoardMember.board_id == board.id, BoardMember.user_id.in_(targets))
    }
    members: list[BoardMember] = []
    for uid in targets:
        member = existing.get(uid)
        if member is None:
            member = BoardMember(board_id=board.id, user_id=uid, role=payload.role, invited_by=owner_id)
            db.add(member)
        else:
            member.role = payload.role
        members.append(member)

    db.commit()
    for member in members:
        db.refresh(member)
    logger.info("Shared board %s with %s user(s) as %s", board.id, len(members), payload.role.value)
    return members


@service_operation("unshare board")
def unshare_board(db: Session, *, current_user: User, board_id: int, user_id: int) -> None:
    board = get_owned_board(db, current_user, board_id)
    db.delete(_get_member(db, board.id, user_id))
    db.commit()
    return None


@service_operation("fetch board members")
def get_board_members(db: Session, *, current_user: User, board_id: int) -> list[BoardMember]:
    board = get_owned_board(db, current_user, board_id)
    return db.query(BoardMember).filter(BoardMember.board_id == board.id).order_by(BoardMember.created_at.asc()).all()


@service_operation("update member role")
def update_member_role(db: Session, *, current_user: User, board_id: int, user_id: int, role: Any) -> BoardMember:
    payload = coerce_input(MemberRoleUpdate, {"role": role})
    board = get_owned_board(db, current_user, board_id)
    member = _get_member(db, board.id, user_id)
    member.role = payload.role
    db.commit()
    db.refresh(member)
    return member


@service_operation("fetch shared boards")
def get_shared_boards(db: Session, *, current_user: User) -> list[Board]:
    return (
        db.query(Board)
        .join(BoardMember, BoardMember.board_id == Board.id)
        .filter(BoardMember.user_id == user_id_of(current_user))
        .order_by(Board.name.asc())
        .all()
    )
