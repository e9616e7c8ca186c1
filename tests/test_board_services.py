import threading

import pytest
from sqlalchemy import func
from sqlalchemy.exc import OperationalError

from taskdeck.db import SessionLocal
from taskdeck.errors import BulkOperationError, InvalidState, NotFound, StorageFailure, Unauthenticated, ValidationError
from taskdeck.models import Board, BoardSection, SingletonBoard, Task
from taskdeck.services import boards as board_service
from taskdeck.services import sections as section_service
from taskdeck.services import tasks as task_service


def test_create_board_provisions_default_sections(db, alice):
    result = board_service.create_board(db, current_user=alice, data={"name": "Groceries"})
    assert result.ok
    board = result.data
    assert board.name == "Groceries"
    assert board.display_order == 0
    assert board.template_type == "custom"

    sections = section_service.get_board_sections(db, current_user=alice, board_id=board.id).unwrap()
    assert [(s.name, s.display_order) for s in sections] == [("To Do", 0), ("In Progress", 1), ("Done", 2)]


def test_create_board_accepts_title_alias_and_increments_order(db, alice):
    first = board_service.create_board(db, current_user=alice, data={"title": "One"}).unwrap()
    second = board_service.create_board(db, current_user=alice, data={"name": "Two", "board_type": "list"}).unwrap()
    assert first.name == "One"
    assert second.display_order == first.display_order + 1
    assert second.template_type == "markdown"


def test_create_board_validation(db, alice):
    result = board_service.create_board(db, current_user=alice, data={"name": ""})
    assert not result.ok
    assert isinstance(result.error, ValidationError)
    assert "name" in result.error.fields

    too_long = board_service.create_board(db, current_user=alice, data={"name": "x" * 201})
    assert isinstance(too_long.error, ValidationError)
    assert db.query(Board).count() == 0


def test_singleton_templates_cannot_be_created_directly(db, alice):
    result = board_service.create_board(db, current_user=alice, data={"name": "Jobs", "template_type": "job_tracker"})
    assert isinstance(result.error, InvalidState)
    kanban = board_service.create_board(db, current_user=alice, data={"name": "Mine", "template_type": "kanban"})
    assert isinstance(kanban.error, InvalidState)


def test_one_kanban_board_per_user(db, alice):
    board_service.create_board(db, current_user=alice, data={"name": "A"}).unwrap()
    board_service.create_board(db, current_user=alice, data={"name": "B"}).unwrap()
    first = board_service.ensure_singleton_board(db, current_user=alice, template_type="kanban").unwrap()
    second = board_service.ensure_singleton_board(db, current_user=alice, template_type="kanban").unwrap()

    assert first.id == second.id
    assert first.name == "My Tasks"
    kanban = db.query(Board).filter(Board.user_id == alice.id, Board.template_type == "kanban").all()
    assert [b.id for b in kanban] == [first.id]


def test_create_board_failure_leaves_no_board(db, alice, monkeypatch):
    def fail(*args, **kwargs):
        raise OperationalError("INSERT INTO task_board_sections", {}, Exception("disk I/O error"))

    monkeypatch.setattr(board_service, "_add_default_sections", fail)
    result = board_service.create_board(db, current_user=alice, data={"name": "Half"})

    assert isinstance(result.error, StorageFailure)
    assert db.query(Board).count() == 0


def test_operations_without_user_are_unauthenticated(db):
    result = board_service.get_boards(db, current_user=None)
    assert result.data is None
    assert isinstance(result.error, Unauthenticated)
    assert result.error.status_code == 401

    with pytest.raises(Unauthenticated):
        board_service.create_board(db, current_user=None, data={"name": "x"}).unwrap()


def test_boards_are_scoped_to_owner(db, alice, bob):
    board = board_service.create_board(db, current_user=alice, data={"name": "Private"}).unwrap()

    assert board_service.get_boards(db, current_user=bob).unwrap() == []
    result = board_service.get_board(db, current_user=bob, board_id=board.id)
    assert isinstance(result.error, NotFound)

    rename = board_service.update_board(db, current_user=bob, board_id=board.id, changes={"name": "Mine"})
    assert isinstance(rename.error, NotFound)
    assert board_service.get_board(db, current_user=alice, board_id=board.id).unwrap().name == "Private"


def test_update_and_delete_board_cascades(db, alice):
    board = board_service.create_board(db, current_user=alice, data={"name": "Temp"}).unwrap()
    task_service.create_task(db, current_user=alice, data={"title": "t", "board_id": board.id}).unwrap()

    updated = board_service.update_board(
        db, current_user=alice, board_id=board.id, changes={"name": " Renamed ", "is_public": True}
    ).unwrap()
    assert updated.name == "Renamed"
    assert updated.is_public is True

    bad = board_service.update_board(db, current_user=alice, board_id=board.id, changes={"owner": 3})
    assert isinstance(bad.error, ValidationError)

    assert board_service.delete_board(db, current_user=alice, board_id=board.id).ok
    assert db.query(Board).count() == 0
    assert db.query(BoardSection).count() == 0
    assert db.query(Task).count() == 0


def test_reorder_boards(db, alice):
    a = board_service.create_board(db, current_user=alice, data={"name": "A"}).unwrap()
    b = board_service.create_board(db, current_user=alice, data={"name": "B"}).unwrap()
    c = board_service.create_board(db, current_user=alice, data={"name": "C"}).unwrap()

    assert board_service.reorder_boards(db, current_user=alice, board_ids=[c.id, a.id, b.id]).ok

    boards = board_service.get_boards(db, current_user=alice).unwrap()
    assert [(x.name, x.display_order) for x in boards] == [("C", 0), ("A", 1), ("B", 2)]


def test_reorder_reports_failures_without_undoing_successes(db, alice, bob):
    a = board_service.create_board(db, current_user=alice, data={"name": "A"}).unwrap()
    b = board_service.create_board(db, current_user=alice, data={"name": "B"}).unwrap()
    foreign = board_service.create_board(db, current_user=bob, data={"name": "Bob's"}).unwrap()

    result = board_service.reorder_boards(db, current_user=alice, board_ids=[b.id, foreign.id, 9999, a.id])
    assert isinstance(result.error, BulkOperationError)
    assert result.error.failed_ids == [foreign.id, 9999]
    assert str(foreign.id) in result.error.message

    db.expire_all()
    assert db.get(Board, b.id).display_order == 0
    assert db.get(Board, a.id).display_order == 3
    assert db.get(Board, foreign.id).display_order == 0


def test_boards_with_stats(db, alice):
    board = board_service.create_board(db, current_user=alice, data={"name": "Stats"}).unwrap()
    t1 = task_service.create_task(db, current_user=alice, data={"title": "a", "board_id": board.id}).unwrap()
    task_service.create_task(db, current_user=alice, data={"title": "b", "board_id": board.id}).unwrap()
    task_service.toggle_task_status(db, current_user=alice, task_id=t1.id).unwrap()

    stats = board_service.get_boards_with_stats(db, current_user=alice).unwrap()
    assert len(stats) == 1
    assert stats[0].task_count == 2
    assert stats[0].done_count == 1


def test_ensure_singleton_board_is_idempotent(db, alice):
    first = board_service.ensure_singleton_board(db, current_user=alice, template_type="job_tracker").unwrap()
    second = board_service.ensure_singleton_board(db, current_user=alice, template_type="job_tracker").unwrap()
    assert first.id == second.id
    assert first.name == "Job Applications"
    assert db.query(Board).filter(Board.template_type == "job_tracker").count() == 1

    sections = section_service.get_board_sections(db, current_user=alice, board_id=first.id).unwrap()
    assert len(sections) == 3


def test_ensure_singleton_board_rejects_other_templates(db, alice):
    result = board_service.ensure_singleton_board(db, current_user=alice, template_type="markdown")
    assert isinstance(result.error, ValidationError)


def test_ensure_starter_boards(db, alice, bob):
    boards = board_service.ensure_starter_boards(db, current_user=alice).unwrap()
    assert sorted(b.template_type for b in boards) == ["job_tracker", "recipe"]

    again = board_service.ensure_starter_boards(db, current_user=alice).unwrap()
    assert sorted(b.id for b in again) == sorted(b.id for b in boards)

    board_service.ensure_starter_boards(db, current_user=bob).unwrap()
    assert db.query(SingletonBoard).count() == 4


def test_concurrent_singleton_provisioning_has_one_winner(engine, db, alice):
    barrier = threading.Barrier(4)
    ids: list[int] = []
    errors: list[object] = []
    lock = threading.Lock()

    def worker():
        session = SessionLocal(bind=engine)
        try:
            barrier.wait()
            result = board_service.ensure_singleton_board(session, current_user=alice, template_type="job_tracker")
            with lock:
                if result.ok:
                    ids.append(result.data.id)
                else:
                    errors.append(result.error)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(ids) == 4
    assert len(set(ids)) == 1

    db.expire_all()
    count = db.query(func.count(Board.id)).filter(Board.template_type == "job_tracker").scalar()
    assert count == 1
    assert db.query(BoardSection).filter(BoardSection.board_id == ids[0]).count() == 3
