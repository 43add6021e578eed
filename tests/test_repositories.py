from datetime import datetime, timedelta

import pytest

from app.core.errors import ConflictError
from app.models.orm.assignment import AssignmentORM
from app.models.orm.history import HistoryEntryORM, OperationType
from app.models.orm.segment import SegmentORM
from app.repositories.history_repo import month_bounds

NOW = datetime(2024, 3, 15, 12, 0, 0)


def make_user_and_segment(storage, name="alice", slug="vip"):
    with storage.unit_of_work():
        user = storage.create_user(name)
        segment = storage.create_segment(slug)
    return user, segment


def test_duplicate_slug_is_a_conflict_not_a_second_row(storage, db_session):
    with storage.unit_of_work():
        storage.create_segment("vip")

    with pytest.raises(ConflictError):
        with storage.unit_of_work():
            storage.create_segment("vip")

    assert db_session.query(SegmentORM).filter(SegmentORM.slug == "vip").count() == 1


def test_duplicate_assignment_is_a_conflict(storage):
    user, segment = make_user_and_segment(storage)
    with storage.unit_of_work():
        storage.add_assignment(user.id, segment.id, NOW + timedelta(hours=1))

    with pytest.raises(ConflictError):
        with storage.unit_of_work():
            storage.add_assignment(user.id, segment.id, NOW + timedelta(hours=2))

    assert storage.get_assignment(user.id, segment.id).delete_at == NOW + timedelta(hours=1)


def test_user_without_assignments_has_empty_slug_list(storage):
    with storage.unit_of_work():
        user = storage.create_user("bob")

    fetched = storage.fetch_user_with_segments(user.id, NOW)

    assert fetched.segment_slugs == []
    assert storage.list_users_with_segments(NOW)[0].segment_slugs == []


def test_fetch_user_lists_only_live_segments(storage):
    user, vip = make_user_and_segment(storage)
    with storage.unit_of_work():
        old = storage.create_segment("old")
        storage.add_assignment(user.id, vip.id, NOW + timedelta(hours=1))
        storage.add_assignment(user.id, old.id, NOW - timedelta(seconds=1))

    fetched = storage.fetch_user_with_segments(user.id, NOW)

    assert fetched.name == "alice"
    assert fetched.segment_slugs == ["vip"]


def test_fetch_unknown_user_returns_none(storage):
    assert storage.fetch_user_with_segments("missing", NOW) is None
    assert storage.user_exists("missing") is False


def test_delete_expired_removes_only_past_deadlines(storage):
    user, vip = make_user_and_segment(storage)
    with storage.unit_of_work():
        later = storage.create_segment("later")
        storage.add_assignment(user.id, vip.id, NOW - timedelta(seconds=1))
        storage.add_assignment(user.id, later.id, NOW + timedelta(hours=1))

    with storage.unit_of_work():
        deleted = storage.delete_expired(NOW)

    assert deleted == 1
    assert storage.get_assignment(user.id, vip.id) is None
    assert storage.get_assignment(user.id, later.id) is not None


def test_update_deadline_and_delete_assignment(storage):
    user, segment = make_user_and_segment(storage)
    with storage.unit_of_work():
        storage.add_assignment(user.id, segment.id, NOW)
        assert storage.update_assignment_deadline(user.id, segment.id, NOW + timedelta(days=1)) == 1

    assert storage.get_assignment(user.id, segment.id).delete_at == NOW + timedelta(days=1)

    with storage.unit_of_work():
        assert storage.delete_assignment(user.id, segment.id) == 1
        assert storage.delete_assignment(user.id, segment.id) == 0


def test_delete_user_removes_assignments_but_keeps_history(storage, db_session):
    user, segment = make_user_and_segment(storage)
    with storage.unit_of_work():
        storage.add_assignment(user.id, segment.id, NOW + timedelta(hours=1))
        storage.save_history(user.id, segment.id, OperationType.ADD, NOW)

    with storage.unit_of_work():
        assert storage.delete_user(user.id) == 1

    assert storage.user_exists(user.id) is False
    assert db_session.query(AssignmentORM).count() == 0
    assert db_session.query(HistoryEntryORM).count() == 1


def test_segment_update_and_rename_conflict(storage):
    with storage.unit_of_work():
        storage.create_segment("a")
        storage.create_segment("b")

    with storage.unit_of_work():
        updated = storage.update_segment("a", description="first")
    assert updated.description == "first"

    with storage.unit_of_work():
        kept = storage.update_segment("a", slug="a2")
    assert kept.description == "first"

    with storage.unit_of_work():
        cleared = storage.update_segment("a2", description=None)
    assert cleared.description is None
    assert storage.update_segment("missing", slug="x") is None

    with pytest.raises(ConflictError):
        with storage.unit_of_work():
            storage.update_segment("a2", slug="b")


def test_delete_segment_cascades_assignments(storage, db_session):
    user, segment = make_user_and_segment(storage)
    with storage.unit_of_work():
        storage.add_assignment(user.id, segment.id, NOW + timedelta(hours=1))

    with storage.unit_of_work():
        assert storage.delete_segment("vip") is True
        assert storage.delete_segment("vip") is False

    assert db_session.query(AssignmentORM).count() == 0
    assert storage.fetch_segment("vip") is None


def test_history_is_scoped_to_the_calendar_month(storage):
    user, segment = make_user_and_segment(storage)
    with storage.unit_of_work():
        storage.save_history(user.id, segment.id, OperationType.ADD, datetime(2024, 1, 31, 23, 59, 59))
        storage.save_history(user.id, segment.id, OperationType.REMOVE, datetime(2024, 2, 1, 0, 0, 0))
        storage.save_history(user.id, segment.id, OperationType.ADD, datetime(2024, 2, 29, 10, 0, 0))

    entries = storage.get_history(2024, 2)

    assert [(e.slug, e.operation, e.operation_at) for e in entries] == [
        ("vip", OperationType.REMOVE, datetime(2024, 2, 1, 0, 0, 0)),
        ("vip", OperationType.ADD, datetime(2024, 2, 29, 10, 0, 0)),
    ]
    assert all(e.user_id == user.id for e in entries)


def test_month_bounds_wrap_december():
    assert month_bounds(2023, 12) == (datetime(2023, 12, 1), datetime(2024, 1, 1))
    assert month_bounds(2024, 2) == (datetime(2024, 2, 1), datetime(2024, 3, 1))
