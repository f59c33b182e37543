"""Referential integrity checks shared by the write operations.

The guard is read-only: it looks records up through the store's
repositories and raises when a write would leave a dangling reference
or an orphaned dependent. Callers run it inside the store transaction,
strictly before the mutation.
"""

from .errors import ConflictError, InvalidReferenceError
from .models import EntityKind

# foreign-key field -> referenced kind, per referencing kind
REFERENCES = {
    EntityKind.TEACHER: {},
    EntityKind.COURSE: {"teacher_id": EntityKind.TEACHER},
    EntityKind.STUDENT: {},
    EntityKind.TEST: {"student_id": EntityKind.STUDENT, "course_id": EntityKind.COURSE},
}

# (dependent kind, foreign-key field, conflict message), per referenced kind
DEPENDENTS = {
    EntityKind.TEACHER: [(EntityKind.COURSE, "teacher_id", "Teacher is used by a course")],
    EntityKind.COURSE: [(EntityKind.TEST, "course_id", "Course has tests")],
    EntityKind.STUDENT: [(EntityKind.TEST, "student_id", "Student has tests")],
    EntityKind.TEST: [],
}


class IntegrityGuard:
    """Validate foreign keys on write and dependents on delete."""
    def __init__(self, store):
        self.store = store

    def validate_reference(self, kind: EntityKind, record_id):
        """Raise `InvalidReferenceError` unless `kind` has a record `record_id`."""
        if not self.store.repo(kind).exists_by_id(record_id):
            raise InvalidReferenceError(
                f"{kind.label} not found",
                details={"kind": kind.value, "id": record_id},
            )

    def validate_references(self, kind: EntityKind, fields: dict):
        """Validate every foreign-key field of `kind` present in `fields`."""
        for field, target in REFERENCES[kind].items():
            if field in fields:
                self.validate_reference(target, fields[field])

    def check_deletable(self, kind: EntityKind, record_id):
        """Raise `ConflictError` if any record still references `record_id`."""
        for dependent, field, message in DEPENDENTS[kind]:
            if self.store.repo(dependent).find_where(field, record_id):
                raise ConflictError(message, details={"kind": dependent.value, "field": field})
