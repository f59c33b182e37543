import pytest

from school_api.errors import ConflictError, InvalidReferenceError
from school_api.integrity import IntegrityGuard
from school_api.models import EntityKind
from school_api.services import SchoolService

TEACHER = {"first_name": "A", "last_name": "B", "email": "a@b.com", "department": "Math"}
COURSE = {"code": "MTH101", "name": "Algebra", "semester": "1", "room": "B12"}


def test_validate_reference(memory_store):
    guard = IntegrityGuard(memory_store)
    teacher = SchoolService(memory_store).create(EntityKind.TEACHER, TEACHER)
    guard.validate_reference(EntityKind.TEACHER, teacher.id)
    with pytest.raises(InvalidReferenceError) as exc:
        guard.validate_reference(EntityKind.TEACHER, teacher.id + 1)
    assert exc.value.details == {"kind": "teachers", "id": teacher.id + 1}


def test_tests_are_always_deletable(memory_store):
    IntegrityGuard(memory_store).check_deletable(EntityKind.TEST, 1)


def test_non_atomic_store_reports_race_on_create(memory_store, monkeypatch):
    svc = SchoolService(memory_store)
    teacher = svc.create(EntityKind.TEACHER, TEACHER)
    monkeypatch.setattr(memory_store, "atomic", False)
    # the teacher disappears between the check and the insert
    answers = iter([True, False])
    monkeypatch.setattr(memory_store.repo(EntityKind.TEACHER), "exists_by_id", lambda _id: next(answers))
    with pytest.raises(ConflictError):
        svc.create(EntityKind.COURSE, {**COURSE, "teacher_id": teacher.id})
    assert memory_store.repo(EntityKind.COURSE).find_all() == []


def test_non_atomic_store_reports_race_on_delete(memory_store, monkeypatch):
    svc = SchoolService(memory_store)
    teacher = svc.create(EntityKind.TEACHER, TEACHER)
    monkeypatch.setattr(memory_store, "atomic", False)
    # a course referencing the teacher shows up right before the delete
    courses = memory_store.repo(EntityKind.COURSE)
    answers = iter([[], ["course"]])
    monkeypatch.setattr(courses, "find_where", lambda field, value: next(answers))
    with pytest.raises(ConflictError) as exc:
        svc.delete(EntityKind.TEACHER, teacher.id)
    assert "changed during the write" in exc.value.message
    assert memory_store.repo(EntityKind.TEACHER).exists_by_id(teacher.id)


def test_atomic_store_checks_once(memory_store, monkeypatch):
    svc = SchoolService(memory_store)
    teacher = svc.create(EntityKind.TEACHER, TEACHER)
    calls = []
    courses = memory_store.repo(EntityKind.COURSE)
    monkeypatch.setattr(courses, "find_where", lambda field, value: calls.append(field) or [])
    svc.delete(EntityKind.TEACHER, teacher.id)
    assert calls == ["teacher_id"]


def test_sql_store_rechecks_inside_the_delete(sql_store, monkeypatch):
    svc = SchoolService(sql_store)
    teacher = svc.create(EntityKind.TEACHER, TEACHER)
    teacher_id = teacher.id
    courses = sql_store.repo(EntityKind.COURSE)
    answers = iter([[], ["course"]])
    monkeypatch.setattr(courses, "find_where", lambda field, value: next(answers))
    with pytest.raises(ConflictError):
        svc.delete(EntityKind.TEACHER, teacher_id)
    # the flushed delete was rolled back
    assert sql_store.repo(EntityKind.TEACHER).exists_by_id(teacher_id)
