from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import get_current_user_optional
from ..db import get_db
from ..models import TaskStatus, TemplateType
from ..schemas import (
    BoardCreate,
    BoardMemberOut,
    BoardOut,
    BoardUpdate,
    BoardWithStatsOut,
    MemberRoleUpdate,
    ReorderRequest,
    SectionCreate,
    SectionOut,
    SectionUpdate,
    ShareRequest,
    TaskOut,
)
from ..services import boards as board_service
from ..services import sections as section_service
from ..services import sharing as sharing_service
from ..services import tasks as task_service
from .common import unwrap_or_raise


router = APIRouter()


@router.get("/", response_model=list[BoardWithStatsOut])
def api_list_boards(db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(board_service.get_boards_with_stats(db, current_user=current_user))


@router.post("/", response_model=BoardOut, status_code=status.HTTP_201_CREATED)
def api_create_board(
    payload: BoardCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(board_service.create_board(db, current_user=current_user, data=payload))


@router.post("/starter", response_model=list[BoardOut])
def api_ensure_starter_boards(db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(board_service.ensure_starter_boards(db, current_user=current_user))


@router.post("/singleton/{template_type}", response_model=BoardOut)
def api_ensure_singleton_board(
    template_type: TemplateType,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(
        board_service.ensure_singleton_board(db, current_user=current_user, template_type=template_type)
    )


@router.get("/shared", response_model=list[BoardOut])
def api_shared_boards(db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(sharing_service.get_shared_boards(db, current_user=current_user))


@router.put("/reorder", status_code=status.HTTP_204_NO_CONTENT)
def api_reorder_boards(
    payload: ReorderRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    unwrap_or_raise(board_service.reorder_boards(db, current_user=current_user, board_ids=payload.ids))


@router.put("/sections/reorder", status_code=status.HTTP_204_NO_CONTENT)
def api_reorder_sections(
    payload: ReorderRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    unwrap_or_raise(section_service.reorder_sections(db, current_user=current_user, section_ids=payload.ids))


@router.patch("/sections/{section_id}", response_model=SectionOut)
def api_update_section(
    section_id: int,
    payload: SectionUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(
        section_service.update_section(db, current_user=current_user, section_id=section_id, data=payload)
    )


@router.delete("/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_delete_section(
    section_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    unwrap_or_raise(section_service.delete_section(db, current_user=current_user, section_id=section_id))


@router.get("/{board_id}", response_model=BoardOut)
def api_get_board(board_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(board_service.get_board(db, current_user=current_user, board_id=board_id))


@router.patch("/{board_id}", response_model=BoardOut)
def api_update_board(
    board_id: int,
    payload: BoardUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(
        board_service.update_board(
            db,
            current_user=current_user,
            board_id=board_id,
            changes=payload,
        )
    )


@router.delete("/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_delete_board(board_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    unwrap_or_raise(board_service.delete_board(db, current_user=current_user, board_id=board_id))


@router.get("/{board_id}/sections", response_model=list[SectionOut])
def api_list_sections(
    board_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(section_service.get_board_sections(db, current_user=current_user, board_id=board_id))


@router.post("/{board_id}/sections", response_model=SectionOut, status_code=status.HTTP_201_CREATED)
def api_create_section(
    board_id: int,
    payload: SectionCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(
        section_service.create_section(db, current_user=current_user, board_id=board_id, data=payload)
    )


@router.get("/{board_id}/tasks", response_model=list[TaskOut])
def api_board_tasks(
    board_id: int,
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    priority: str | None = Query(default=None),
    section_id: int | None = Query(default=None),
    search: str | None = Query(default=None),
    tag: list[str] | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    filters = {
        "status": status_filter,
        "priority": priority,
        "section_id": section_id,
        "search": search,
        "tags": tag,
    }
    return unwrap_or_raise(
        task_service.get_tasks(
            db,
            current_user=current_user,
            board_id=board_id,
            filters={k: v for k, v in filters.items() if v is not None},
        )
    )


@router.get("/{board_id}/members", response_model=list[BoardMemberOut])
def api_board_members(
    board_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(sharing_service.get_board_members(db, current_user=current_user, board_id=board_id))


@router.post("/{board_id}/share", response_model=list[BoardMemberOut])
def api_share_board(
    board_id: int,
    payload: ShareRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(
        sharing_service.share_board(
            db,
            current_user=current_user,
            board_id=board_id,
            user_ids=payload.user_ids,
            role=payload.role,
        )
    )


@router.patch("/{board_id}/members/{user_id}", response_model=BoardMemberOut)
def api_update_member_role(
    board_id: int,
    user_id: int,
    payload: MemberRoleUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(
        sharing_service.update_member_role(
            db,
            current_user=current_user,
            board_id=board_id,
            user_id=user_id,
            role=payload.role,
        )
    )


@router.delete("/{board_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_unshare_board(
    board_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    unwrap_or_raise(sharing_service.unshare_board(db, current_user=current_user, board_id=board_id, user_id=user_id))
