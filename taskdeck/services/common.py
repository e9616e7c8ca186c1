from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence, TypeVar

from pydantic import BaseModel
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import BulkOperationError, Forbidden, NotFound
from ..models import Board, BoardMember, BoardSection, Connection, MemberRole, Task, User


logger = logging.getLogger("taskdeck.service")

M = TypeVar("M", bound=BaseModel)


def user_id_of(current_user: User) -> int:
    return int(current_user.id)


def coerce_input(schema: type[M], data: Any) -> M:
    """Accept either a ready schema instance or a plain mapping."""
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    return schema.model_validate(data or {})


def owned_boards_query(db: Session, current_user: User):
    return db.query(Board).filter(Board.user_id == user_id_of(current_user))


def get_owned_board(db: Session, current_user: User, board_id: int) -> Board:
    board = owned_boards_query(db, current_user).filter(Board.id == int(board_id)).first()
    if board is None:
        raise NotFound(f"Board {board_id} not found")
    return board


def get_owned_section(db: Session, current_user: User, section_id: int) -> BoardSection:
    section = (
        db.query(BoardSection)
        .join(Board, Board.id == BoardSection.board_id)
        .filter(BoardSection.id == int(section_id), Board.user_id == user_id_of(current_user))
        .first()
    )
    if section is None:
        raise NotFound(f"Section {section_id} not found")
    return section


def _owned_board_ids(uid: int):
    return select(Board.id).where(Board.user_id == uid)


def _member_board_ids(uid: int, *roles: MemberRole):
    q = select(BoardMember.board_id).where(BoardMember.user_id == uid)
    if roles:
        q = q.where(BoardMember.role.in_(roles))
    return q


def _visible_board_criteria(uid: int):
    """Owner, any member, or a connection of the owner when the board is public."""
    friend_of_owner = or_(
        Board.user_id.in_(select(Connection.friend_id).where(Connection.user_id == uid)),
        Board.user_id.in_(select(Connection.user_id).where(Connection.friend_id == uid)),
    )
    return or_(
        Board.user_id == uid,
        Board.id.in_(_member_board_ids(uid)),
        and_(Board.is_public.is_(True), friend_of_owner),
    )


def visible_boards_query(db: Session, current_user: User):
    return db.query(Board).filter(_visible_board_criteria(user_id_of(current_user)))


def get_visible_board(db: Session, current_user: User, board_id: int) -> Board:
    board = visible_boards_query(db, current_user).filter(Board.id == int(board_id)).first()
    if board is None:
        raise NotFound(f"Board {board_id} not found")
    return board


def editable_board_ids(current_user: User):
    uid = user_id_of(current_user)
    return select(Board.id).where(
        or_(Board.user_id == uid, Board.id.in_(_member_board_ids(uid, MemberRole.editor)))
    )


def get_editable_board(db: Session, current_user: User, board_id: int) -> Board:
    """Boards the caller may add or change tasks on: owned, or shared as editor."""
    board = get_visible_board(db, current_user, board_id)
    if board.user_id == user_id_of(current_user):
        return board
    editable = db.execute(editable_board_ids(current_user).where(Board.id == board.id)).first()
    if editable is None:
        raise Forbidden(f"Board {board_id} is read-only for you")
    return board


def owned_tasks_query(db: Session, current_user: User):
    """Tasks the caller created plus every task on boards they own."""
    uid = user_id_of(current_user)
    return db.query(Task).filter(or_(Task.user_id == uid, Task.board_id.in_(_owned_board_ids(uid))))


def get_owned_task(db: Session, current_user: User, task_id: int) -> Task:
    task = owned_tasks_query(db, current_user).filter(Task.id == int(task_id)).first()
    if task is None:
        raise NotFound(f"Task {task_id} not found")
    return task


def visible_tasks_query(db: Session, current_user: User):
    uid = user_id_of(current_user)
    visible_ids = select(Board.id).where(_visible_board_criteria(uid))
    return db.query(Task).filter(or_(Task.user_id == uid, Task.board_id.in_(visible_ids)))


def get_visible_task(db: Session, current_user: User, task_id: int) -> Task:
    task = visible_tasks_query(db, current_user).filter(Task.id == int(task_id)).first()
    if task is None:
        raise NotFound(f"Task {task_id} not found")
    return task


def get_editable_task(db: Session, current_user: User, task_id: int) -> Task:
    task = get_visible_task(db, current_user, task_id)
    if task.board_id is not None:
        get_editable_board(db, current_user, task.board_id)
    return task


def scope_filter(column, value: Optional[int]):
    # SQL equality never matches NULL.
    return column.is_(None) if value is None else column == int(value)


def next_display_order(db: Session, column, *criteria) -> int:
    current_max = db.execute(select(func.max(column)).where(*criteria)).scalar()
    return 0 if current_max is None else int(current_max) + 1


def reorder_rows(
    db: Session,
    *,
    model,
    ids: Sequence[int],
    owner_criteria: Iterable[Any],
    operation: str,
) -> None:
    """Set display_order = position for each id, one committed UPDATE per row.

    Rows that fail are collected and reported together; rows already written
    stay written.
    """
    criteria = list(owner_criteria)
    failed: list[int] = []
    causes: dict[int, str] = {}

    for index, raw_id in enumerate(ids):
        row_id = int(raw_id)
        stmt = (
            update(model)
            .where(model.id == row_id, *criteria)
            .values(display_order=index)
            .execution_options(synchronize_session=False)
        )
        try:
            result = db.execute(stmt)
            if not result.rowcount:
                db.rollback()
                failed.append(row_id)
                causes[row_id] = "not found"
                continue
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("%s: update of id %s failed: %s", operation, row_id, e)
            failed.append(row_id)
            causes[row_id] = str(e)

    if failed:
        raise BulkOperationError(operation, failed, causes)
