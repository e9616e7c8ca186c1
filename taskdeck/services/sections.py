from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..models import Board, BoardSection, Task, User
from ..results import service_operation
from ..schemas import SectionCreate, SectionUpdate
from .common import (
    coerce_input,
    get_owned_board,
    get_owned_section,
    get_visible_board,
    next_display_order,
    reorder_rows,
    user_id_of,
)


logger = logging.getLogger("taskdeck.service.sections")


@service_operation("fetch board sections")
def get_board_sections(db: Session, *, current_user: User, board_id: int) -> list[BoardSection]:
    board = get_visible_board(db, current_user, board_id)
    return (
        db.query(BoardSection)
        .filter(BoardSection.board_id == board.id)
        .order_by(BoardSection.display_order.asc(), BoardSection.id.asc())
        .all()
    )


@service_operation("create section")
def create_section(db: Session, *, current_user: User, board_id: int, data: Any) -> BoardSection:
    payload = coerce_input(SectionCreate, data)
    board = get_owned_board(db, current_user, board_id)

    order = payload.display_order
    if order is None:
        order = next_display_order(db, BoardSection.display_order, BoardSection.board_id == board.id)

    section = BoardSection(board_id=board.id, name=payload.name.strip(), display_order=order)
    db.add(section)
    db.commit()
    db.refresh(section)
    return section


@service_operation("update section")
def update_section(db: Session, *, current_user: User, section_id: int, data: Any) -> BoardSection:
    payload = coerce_input(SectionUpdate, data)
    section = get_owned_section(db, current_user, section_id)
    section.name = payload.name.strip()
    db.commit()
    db.refresh(section)
    return section


@service_operation("delete section")
def delete_section(db: Session, *, current_user: User, section_id: int) -> None:
    """Delete a section. Its tasks stay on the board, unsectioned."""
    section = get_owned_section(db, current_user, section_id)
    db.execute(
        update(Task)
        .where(Task.section_id == section.id)
        .values(section_id=None)
        .execution_options(synchronize_session=False)
    )
    db.delete(section)
    db.commit()
    logger.info("Deleted section %s of board %s", section_id, section.board_id)
    return None


@service_operation("reorder sections")
def reorder_sections(db: Session, *, current_user: User, section_ids: Sequence[int]) -> None:
    owned_boards = select(Board.id).where(Board.user_id == user_id_of(current_user))
    reorder_rows(
        db,
        model=BoardSection,
        ids=section_ids,
        owner_criteria=[BoardSection.board_id.in_(owned_boards)],
        operation="Reorder sections",
    )
    return None
