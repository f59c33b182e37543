"""Pydantic request/response schemas used by the API.

Request bodies only check types, strictly; every field is optional so that
presence rules stay in the service and produce the same
`MissingFieldError` regardless of transport. Bodies accept both the
snake_case field names and their camelCase spelling (`firstName`,
`outOf`, `teacherId`).
"""

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr
from pydantic.alias_generators import to_camel
from typing import Optional, Union

# ids must be JSON integers, numbers JSON numbers; booleans and numeric strings are rejected
Id = Optional[StrictInt]
Number = Optional[Union[StrictInt, StrictFloat]]
Text = Optional[StrictStr]


class PayloadIn(BaseModel):
    """Base for request bodies; dump with `exclude_unset=True`."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TeacherIn(PayloadIn):
    first_name: Text = None
    last_name: Text = None
    email: Text = None
    department: Text = None
    room: Text = None


class CourseIn(PayloadIn):
    code: Text = None
    name: Text = None
    teacher_id: Id = None
    semester: Text = None
    room: Text = None
    schedule: Text = None


class StudentIn(PayloadIn):
    first_name: Text = None
    last_name: Text = None
    grade: Number = None
    student_number: Text = None
    homeroom: Text = None


class TestIn(PayloadIn):
    """A test result; `weight` is stored but not used in averages."""
    student_id: Id = None
    course_id: Id = None
    name: Text = None
    date: Text = None
    mark: Number = None
    out_of: Number = None
    weight: Number = None


class AverageOut(BaseModel):
    """Average percentage over a student's or course's tests."""
    average: float
    count: int
