import pytest

from school_api import models
from school_api.errors import NoDataError
from school_api.grades import GradeAverage, average_for, percent


def _test(mark, out_of, weight=None):
    return models.Test(id=1, student_id=1, course_id=1, name="t", date="2024-01-01",
                       mark=mark, out_of=out_of, weight=weight)


def test_average_is_mean_of_percentages():
    result = average_for([_test(8, 10), _test(5, 10)])
    assert result == GradeAverage(average=65.0, count=2)


def test_average_mixes_out_of_values():
    # 50% and 100%
    result = average_for([_test(10, 20), _test(4, 4)])
    assert result.average == 75.0


def test_weight_does_not_change_average():
    weighted = average_for([_test(8, 10, weight=3), _test(5, 10, weight=0.5)])
    assert weighted.average == 65.0


def test_average_rounds_to_two_decimals():
    result = average_for([_test(1, 3)])
    assert result.average == 33.33
    assert result.count == 1


def test_percent_of_single_test():
    assert percent(_test(45, 50)) == pytest.approx(90.0)


def test_empty_sequence_raises_no_data():
    with pytest.raises(NoDataError):
        average_for([])
