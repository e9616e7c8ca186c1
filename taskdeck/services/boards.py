from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..constants import (
    DEFAULT_BOARD_COLOR,
    DEFAULT_BOARD_SECTIONS,
    SINGLETON_BOARD_ICONS,
    SINGLETON_BOARD_NAMES,
    STARTER_TEMPLATE_TYPES,
)
from ..errors import InvalidState, StorageFailure, ValidationError
from ..models import Board, BoardSection, BoardType, SingletonBoard, Task, TaskStatus, TemplateType, User
from ..results import service_operation
from ..schemas import BoardCreate, BoardOut, BoardUpdate, BoardWithStatsOut
from .common import (
    coerce_input,
    get_owned_board,
    get_visible_board,
    next_display_order,
    owned_boards_query,
    reorder_rows,
    user_id_of,
)


logger = logging.getLogger("taskdeck.service.boards")

# One per user, only provisioned through ensure_singleton_board.
_PROVISIONED_ONLY = {TemplateType.job_tracker.value, TemplateType.recipe.value, TemplateType.kanban.value}


def _ordered(query):
    return query.order_by(Board.display_order.is_(None), Board.display_order.asc(), Board.created_at.desc())


def _template_for(payload: BoardCreate) -> str:
    if payload.template_type is not None:
        return payload.template_type.value
    if payload.board_type == BoardType.list:
        return TemplateType.markdown.value
    if payload.board_type == BoardType.job_tracker:
        return TemplateType.job_tracker.value
    return TemplateType.custom.value


def _next_board_order(db: Session, current_user: User) -> int:
    return next_display_order(db, Board.display_order, Board.user_id == user_id_of(current_user))


def _add_default_sections(db: Session, board_id: int) -> None:
    for name, order in DEFAULT_BOARD_SECTIONS:
        db.add(BoardSection(board_id=board_id, name=name, display_order=order))


@service_operation("fetch boards")
def get_boards(db: Session, *, current_user: User) -> list[Board]:
    return _ordered(owned_boards_query(db, current_user)).all()


@service_operation("fetch boards with stats")
def get_boards_with_stats(db: Session, *, current_user: User) -> list[BoardWithStatsOut]:
    boards = _ordered(owned_boards_query(db, current_user)).all()

    counts = (
        db.query(
            Task.board_id,
            func.count(Task.id),
            func.sum(case((Task.status == TaskStatus.done, 1), else_=0)),
        )
        .filter(Task.board_id.in_(select(Board.id).where(Board.user_id == user_id_of(current_user))))
        .group_by(Task.board_id)
        .all()
    )
    by_board = {board_id: (int(total or 0), int(done or 0)) for board_id, total, done in counts}

    out: list[BoardWithStatsOut] = []
    for board in boards:
        total, done = by_board.get(board.id, (0, 0))
        base = BoardOut.model_validate(board).model_dump()
        out.append(BoardWithStatsOut(**base, task_count=total, done_count=done))
    return out


@service_operation("fetch board")
def get_board(db: Session, *, current_user: User, board_id: int) -> Board:
    return get_visible_board(db, current_user, board_id)


@service_operation("create board")
def create_board(db: Session, *, current_user: User, data: Any) -> Board:
    """Create a board plus its three default sections.

    The board is flushed and read back through the owner-filtered query
    before the sections are added; board and sections commit together.
    """
    payload = coerce_input(BoardCreate, data)
    template = _template_for(payload)
    if template in _PROVISIONED_ONLY:
        raise InvalidState(f"{template} boards are provisioned automatically, one per user")

    board = Board(
        user_id=user_id_of(current_user),
        name=payload.name.strip(),
        description=payload.description,
        icon=payload.icon,
        icon_color=payload.icon_color or DEFAULT_BOARD_COLOR,
        is_public=payload.is_public,
        board_type=payload.board_type.value,
        template_type=template,
        field_config=payload.field_config,
        display_order=_next_board_order(db, current_user),
    )
    db.add(board)
    db.flush()
    board_id = board.id

    created = owned_boards_query(db, current_user).filter(Board.id == board_id).first()
    if created is None:
        db.rollback()
        raise StorageFailure(f"Board {board_id} was created but could not be read back")

    _add_default_sections(db, created.id)
    db.commit()
    db.refresh(created)
    logger.info("Created board %s for user %s", created.id, current_user.id)
    return created


@service_operation("update board")
def update_board(db: Session, *, current_user: User, board_id: int, changes: Any) -> Board:
    payload = coerce_input(BoardUpdate, changes)
    board = get_owned_board(db, current_user, board_id)

    fields = payload.model_dump(exclude_unset=True)
    if "name" in fields:
        if fields["name"] is None:
            raise ValidationError("Board name cannot be empty", {"name": ["Field required"]})
        fields["name"] = fields["name"].strip()
    for key, value in fields.items():
        setattr(board, key, value)

    db.commit()
    db.refresh(board)
    return board


@service_operation("delete board")
def delete_board(db: Session, *, current_user: User, board_id: int) -> None:
    board = get_owned_board(db, current_user, board_id)
    db.delete(board)
    db.commit()
    logger.info("Deleted board %s for user %s", board_id, current_user.id)
    return None


@service_operation("reorder boards")
def reorder_boards(db: Session, *, current_user: User, board_ids: Sequence[int]) -> None:
    reorder_rows(
        db,
        model=Board,
        ids=board_ids,
        owner_criteria=[Board.user_id == user_id_of(current_user)],
        operation="Reorder boards",
    )
    return None


def _singleton_board(db: Session, current_user: User, template_type: str) -> Optional[Board]:
    return (
        owned_boards_query(db, current_user)
        .join(SingletonBoard, SingletonBoard.board_id == Board.id)
        .filter(
            SingletonBoard.user_id == user_id_of(current_user),
            SingletonBoard.template_type == template_type,
        )
        .first()
    )


@service_operation("ensure singleton board")
def ensure_singleton_board(db: Session, *, current_user: User, template_type: Any) -> Board:
    """Return the caller's board for a singleton template, creating it on first use.

    Board and mapping row are inserted in one transaction. When a concurrent
    call wins the race the mapping insert fails on the primary key; the
    transaction is rolled back and the winner's board is returned.
    """
    tt = str(getattr(template_type, "value", template_type) or "")
    if tt not in SINGLETON_BOARD_NAMES:
        raise ValidationError(
            f"{tt or 'empty'} is not a singleton template type",
            {"template_type": [f"Must be one of: {', '.join(sorted(SINGLETON_BOARD_NAMES))}"]},
        )

    existing = _singleton_board(db, current_user, tt)
    if existing is not None:
        return existing

    icon, color = SINGLETON_BOARD_ICONS[tt]
    board_type = BoardType.job_tracker.value if tt == TemplateType.job_tracker.value else BoardType.kanban.value
    try:
        board = Board(
            user_id=user_id_of(current_user),
            name=SINGLETON_BOARD_NAMES[tt],
            icon=icon,
            icon_color=color,
            board_type=board_type,
            template_type=tt,
            display_order=_next_board_order(db, current_user),
        )
        db.add(board)
        db.flush()
        _add_default_sections(db, board.id)
        db.add(SingletonBoard(user_id=user_id_of(current_user), template_type=tt, board_id=board.id))
        db.commit()
        logger.info("Provisioned %s board %s for user %s", tt, board.id, current_user.id)
    except IntegrityError:
        db.rollback()
        logger.info("Concurrent %s board provisioning for user %s; using existing board", tt, current_user.id)

    winner = _singleton_board(db, current_user, tt)
    if winner is None:
        raise StorageFailure(f"Could not provision {tt} board")
    return winner


@service_operation("ensure starter boards")
def ensure_starter_boards(db: Session, *, current_user: User) -> list[Board]:
    for tt in STARTER_TEMPLATE_TYPES:
        ensure_singleton_board(db, current_user=current_user, template_type=tt).unwrap()
    return _ordered(owned_boards_query(db, current_user)).all()
