import dataclasses

import pytest

from dbsqlkit.result import Result


def test_defaults_are_zero():
    result = Result()
    assert result.rows_affected == 0
    assert result.last_insert_id == 0


def test_rows_affected_is_kept():
    result = Result(rows_affected=10)
    assert result.rows_affected == 10
    assert result.last_insert_id == 0


def test_results_compare_by_value():
    assert Result(rows_affected=3) == Result(rows_affected=3)
    assert Result(rows_affected=3) != Result(rows_affected=4)


def test_result_is_immutable():
    result = Result(rows_affected=1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        result.rows_affected = 2
    assert result.rows_affected == 1