"""Average-grade computations over `Test` records."""

from dataclasses import dataclass
from typing import Sequence
from .errors import InvalidFieldError, NoDataError
from .models import EntityKind


@dataclass(frozen=True)
class GradeAverage:
    average: float
    count: int


def percent(test) -> float:
    """Score of a single test as a percentage of `out_of`."""
    if not test.out_of:
        raise InvalidFieldError(f"test {test.id} has no out_of value")
    return (test.mark / test.out_of) * 100


def average_for(tests: Sequence) -> GradeAverage:
    """Unweighted mean percentage over `tests`, rounded to 2 decimals.

    `weight` is not applied; every test counts once.
    Raises `NoDataError` for an empty sequence.
    """
    if not tests:
        raise NoDataError("No tests found")
    scores = [percent(t) for t in tests]
    return GradeAverage(average=round(sum(scores) / len(scores), 2), count=len(scores))


class GradeAggregator:
    """Filter tests by student or course and average them."""
    def __init__(self, store):
        self.store = store

    def average_for_student(self, student_id: int) -> GradeAverage:
        return average_for(self.store.repo(EntityKind.TEST).find_where("student_id", student_id))

    def average_for_course(self, course_id: int) -> GradeAverage:
        return average_for(self.store.repo(EntityKind.TEST).find_where("course_id", course_id))
