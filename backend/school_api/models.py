"""SQLModel data models.

This module defines the four school entity tables and the
`EntityKind` enumeration the services dispatch on. The same classes
back every storage backend: the SQL repositories persist them through a
session, the in-memory and JSON repositories build them from plain rows.
On SQLite the tables use AUTOINCREMENT so ids of deleted rows are never
handed out again.
"""

from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class Teacher(SQLModel, table=True):
    """A teacher; `email` and `department` are required and non-empty."""
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str
    last_name: str
    email: str = Field(index=True)
    department: str
    room: str = ""


class Course(SQLModel, table=True):
    """A course taught by exactly one `Teacher`."""
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True)
    name: str
    teacher_id: int = Field(foreign_key='teacher.id', index=True)
    semester: str
    room: str
    schedule: str = ""


class Student(SQLModel, table=True):
    """A student. `grade` is the numeric school year."""
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str
    last_name: str
    grade: float
    student_number: str = Field(index=True)
    homeroom: str = ""


class Test(SQLModel, table=True):
    """A marked test written by a `Student` in a `Course`.

    `weight` is stored as supplied but is not used when averaging.
    """
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key='student.id', index=True)
    course_id: int = Field(foreign_key='course.id', index=True)
    name: str
    date: str
    mark: float
    out_of: float
    weight: Optional[float] = None


class EntityKind(str, Enum):
    """The four entity kinds, valued by their collection name."""
    TEACHER = "teachers"
    COURSE = "courses"
    STUDENT = "students"
    TEST = "tests"

    @property
    def model(self):
        return MODEL_BY_KIND[self]

    @property
    def label(self) -> str:
        return self.model.__name__

    def fields(self):
        """Names of the writable fields, i.e. everything but `id`."""
        return [name for name in self.model.model_fields if name != "id"]


MODEL_BY_KIND = {
    EntityKind.TEACHER: Teacher,
    EntityKind.COURSE: Course,
    EntityKind.STUDENT: Student,
    EntityKind.TEST: Test,
}
