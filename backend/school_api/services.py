"""Business logic services used by HTTP controllers.

`SchoolService` runs one logical operation per call against a `Store`.
It validates payloads, consults the `IntegrityGuard` before mutating,
delegates persistence to the repositories and computes averages via the
`GradeAggregator`. Every rejected operation raises exactly one
`SchoolError`; controllers only translate those into responses.

Each write mutates a single entity kind and nothing is cascaded: a
teacher, course or student that is still referenced cannot be deleted.
"""

import logging
from contextlib import contextmanager
from numbers import Real
from typing import List
from sqlmodel import SQLModel
from .errors import (
    ConflictError,
    EmptyUpdateError,
    InvalidFieldError,
    MissingFieldError,
    NotFoundError,
    SchoolError,
)
from .grades import GradeAggregator, GradeAverage
from .integrity import REFERENCES, IntegrityGuard
from .models import EntityKind

logger = logging.getLogger("school_api.services")

REQUIRED_FIELDS = {
    EntityKind.TEACHER: ("first_name", "last_name", "email", "department"),
    EntityKind.COURSE: ("code", "name", "teacher_id", "semester", "room"),
    EntityKind.STUDENT: ("first_name", "last_name", "grade", "student_number"),
    EntityKind.TEST: ("student_id", "course_id", "name", "date", "mark", "out_of"),
}

DEFAULTS = {
    EntityKind.TEACHER: {"room": ""},
    EntityKind.COURSE: {"schedule": ""},
    EntityKind.STUDENT: {"homeroom": ""},
    EntityKind.TEST: {"weight": None},
}

NUMERIC_FIELDS = {"grade", "mark", "out_of", "weight"}


def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_present(value) -> bool:
    """Strings must be non-blank; anything else just non-null (0 counts)."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


class SchoolService:
    """CRUD for teachers, courses, students and tests plus grade averages."""
    def __init__(self, store):
        self.store = store
        self.guard = IntegrityGuard(store)
        self.aggregator = GradeAggregator(store)

    # --- reads ---

    def get(self, kind: EntityKind, record_id: int) -> SQLModel:
        """Return one record or raise `NotFoundError`."""
        record = self.store.repo(kind).find_by_id(record_id)
        if record is None:
            raise NotFoundError(f"{kind.label} not found", details={"id": record_id})
        return record

    def list_records(self, kind: EntityKind, **filters) -> List[SQLModel]:
        """List records of `kind`, optionally filtered by field equality.

        Filters whose value is `None` are ignored, so query parameters can
        be passed straight through.
        """
        filters = {k: v for k, v in filters.items() if v is not None}
        unknown = [k for k in filters if k not in kind.fields()]
        if unknown:
            raise InvalidFieldError(f"cannot filter {kind.value} by {', '.join(unknown)}")
        repo = self.store.repo(kind)
        if not filters:
            return repo.find_all()
        (field, value), *rest = filters.items()
        return [r for r in repo.find_where(field, value) if all(getattr(r, f) == v for f, v in rest)]

    def average_for_student(self, student_id: int) -> GradeAverage:
        self.get(EntityKind.STUDENT, student_id)
        return self.aggregator.average_for_student(student_id)

    def average_for_course(self, course_id: int) -> GradeAverage:
        self.get(EntityKind.COURSE, course_id)
        return self.aggregator.average_for_course(course_id)

    # --- writes ---

    def create(self, kind: EntityKind, payload: dict) -> SQLModel:
        """Validate `payload` and insert a new record of `kind`.

        Unknown keys are ignored and optional fields fall back to their
        defaults. Raises `MissingFieldError` listing every absent required
        field, `InvalidFieldError` for bad values and
        `InvalidReferenceError` for foreign keys that do not resolve.
        """
        with self._rejections("create", kind):
            fields = self._recognized(kind, payload)
            missing = [f for f in REQUIRED_FIELDS[kind] if not _is_present(fields.get(f))]
            if missing:
                raise MissingFieldError("Missing required fields", details={"missing": missing})
            self._check_values(kind, fields)
            record = dict(DEFAULTS[kind])
            record.update((k, v) for k, v in fields.items() if v is not None)
            with self.store.transaction():
                self.guard.validate_references(kind, record)
                verify = self._verifier(kind, lambda: self.guard.validate_references(kind, record))
                created = self.store.repo(kind).insert(record, verify=verify)
        logger.info("created %s %s", kind.label, created.id)
        return created

    def update(self, kind: EntityKind, record_id: int, payload: dict) -> SQLModel:
        """Merge the recognized fields of `payload` into an existing record.

        Fields not present in `payload` keep their current values, so
        applying the same update twice is the same as applying it once.
        """
        with self._rejections("update", kind, record_id):
            repo = self.store.repo(kind)
            with self.store.transaction():
                if not repo.exists_by_id(record_id):
                    raise NotFoundError(f"{kind.label} not found", details={"id": record_id})
                fields = self._recognized(kind, payload)
                if not fields:
                    raise EmptyUpdateError("No updatable fields supplied", details={"allowed": kind.fields()})
                self._check_values(kind, fields)
                fields = {k: DEFAULTS[kind].get(k) if v is None else v for k, v in fields.items()}
                self.guard.validate_references(kind, fields)
                verify = self._verifier(kind, lambda: self.guard.validate_references(kind, fields))
                updated = repo.update(record_id, fields, verify=verify)
                if updated is None:
                    raise ConflictError(f"{kind.label} was deleted during the update", details={"id": record_id})
        logger.info("updated %s %s: %s", kind.label, record_id, ", ".join(sorted(fields)))
        return updated

    def delete(self, kind: EntityKind, record_id: int) -> SQLModel:
        """Delete a record nothing references any more and return it."""
        with self._rejections("delete", kind, record_id):
            repo = self.store.repo(kind)
            with self.store.transaction():
                if not repo.exists_by_id(record_id):
                    raise NotFoundError(f"{kind.label} not found", details={"id": record_id})
                self.guard.check_deletable(kind, record_id)
                verify = self._verifier(kind, lambda: self.guard.check_deletable(kind, record_id))
                deleted = repo.delete(record_id, verify=verify)
                if deleted is None:
                    raise ConflictError(f"{kind.label} was deleted concurrently", details={"id": record_id})
        logger.info("deleted %s %s", kind.label, record_id)
        return deleted

    # --- helpers ---

    def _recognized(self, kind: EntityKind, payload: dict) -> dict:
        allowed = kind.fields()
        return {k: v for k, v in payload.items() if k in allowed}

    def _check_values(self, kind: EntityKind, fields: dict):
        """Type and range checks for the supplied fields of `kind`."""
        required = REQUIRED_FIELDS[kind]
        references = REFERENCES[kind]
        for field, value in fields.items():
            if value is None:
                if field in required:
                    raise InvalidFieldError(f"{field} cannot be null", details={"field": field})
                continue
            if field in references:
                if not isinstance(value, int) or isinstance(value, bool):
                    raise InvalidFieldError(f"{field} must be an integer id", details={"field": field})
            elif field in NUMERIC_FIELDS:
                if not _is_number(value):
                    raise InvalidFieldError(f"{field} must be a number", details={"field": field})
                if field == "out_of" and value <= 0:
                    raise InvalidFieldError("out_of must be greater than zero", details={"field": field})
            elif not isinstance(value, str):
                raise InvalidFieldError(f"{field} must be a string", details={"field": field})
            elif field in required and not value.strip():
                raise InvalidFieldError(f"{field} cannot be empty", details={"field": field})

    def _verifier(self, kind: EntityKind, check):
        """Wrap `check` for repositories of stores that do not serialize writes.

        The repository runs it inside the write transaction, right before
        committing. A failure there means another writer changed the data
        since the first check; it is reported as a conflict and not retried.
        Atomic stores get `None` and skip the second check.
        """
        if self.store.atomic:
            return None

        def verify():
            try:
                check()
            except SchoolError as exc:
                raise ConflictError(
                    f"{kind.label} changed during the write, try again",
                    details={"reason": exc.message},
                ) from exc

        return verify

    @contextmanager
    def _rejections(self, action: str, kind: EntityKind, record_id=None):
        try:
            yield
        except SchoolError as exc:
            target = kind.label if record_id is None else f"{kind.label} {record_id}"
            logger.warning("%s %s rejected: %s", action, target, exc.message)
            raise
