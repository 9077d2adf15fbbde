import pytest

from accountcore.services.historical import MonthlyDataPoint
from accountcore.services.prediction import (
    add_months,
    confidence,
    confidence_level,
    generate_projection_set,
    linear_regression,
    moving_average,
    project,
)


def _series(values: list[float], first_month: str = "2024-01") -> list[MonthlyDataPoint]:
    return [MonthlyDataPoint(month=add_months(first_month, index), value=value) for index, value in enumerate(values)]


def test_regression_recovers_linear_series() -> None:
    result = linear_regression([2.0, 4.0, 6.0, 8.0])

    assert result.slope == pytest.approx(2.0)
    assert result.intercept == pytest.approx(2.0)
    assert result.r_squared == pytest.approx(1.0)
    assert result.at(10) == pytest.approx(22.0)


def test_regression_degenerate_inputs() -> None:
    assert linear_regression([]).slope == 0.0
    single = linear_regression([7.0])
    assert (single.slope, single.intercept, single.r_squared) == (0.0, 7.0, 1.0)
    flat = linear_regression([3.0, 3.0, 3.0])
    assert flat.slope == 0.0
    assert flat.r_squared == 1.0


def test_moving_average_uses_partial_leading_windows() -> None:
    assert moving_average([1.0, 2.0, 3.0, 4.0], 2) == [1.0, 1.5, 2.5, 3.5]
    with pytest.raises(ValueError):
        moving_average([1.0], 0)


def test_add_months_rolls_over_year_end() -> None:
    assert add_months("2024-11", 1) == "2024-12"
    assert add_months("2024-12", 1) == "2025-01"
    assert add_months("2024-01", 25) == "2026-02"


def test_projection_continues_trend_with_widening_band() -> None:
    history = _series([100.0, 130.0, 150.0, 185.0, 200.0, 240.0])

    projected = project(history, 6)

    assert [point.month for point in projected] == ["2024-07", "2024-08", "2024-09", "2024-10", "2024-11", "2024-12"]
    values = [point.value for point in projected]
    assert values == sorted(values)
    widths = [point.upper_bound - point.lower_bound for point in projected]
    assert widths == sorted(widths)
    assert all(point.lower_bound <= point.value <= point.upper_bound for point in projected)


def test_projection_never_goes_negative() -> None:
    projected = project(_series([300.0, 200.0, 100.0]), 3)

    assert all(point.value >= 0 for point in projected)
    assert all(point.lower_bound >= 0 for point in projected)
    assert projected[-1].value == 0.0


def test_confidence_is_zero_below_three_points_and_bounded_otherwise() -> None:
    assert confidence([]) == 0
    assert confidence([10.0, 20.0]) == 0
    assert confidence([5.0, 5.0, 5.0]) == 74
    for values in ([1.0, 50.0, 2.0, 80.0], [10.0 * step for step in range(1, 40)], [0.0, -5.0, 5.0, 0.0]):
        assert 0 <= confidence(values) <= 100


def test_confidence_levels() -> None:
    assert confidence_level(95) == "high"
    assert confidence_level(80) == "high"
    assert confidence_level(50) == "medium"
    assert confidence_level(49) == "low"


def test_projection_set_has_three_horizons() -> None:
    result = generate_projection_set(_series([10.0, 20.0, 30.0, 40.0]))

    assert len(result.three_months) == 3
    assert len(result.six_months) == 6
    assert len(result.twelve_months) == 12
    assert result.three_months[0].value == pytest.approx(50.0)
    assert result.twelve_months[0].value == pytest.approx(result.three_months[0].value)
    assert result.confidence_level == confidence_level(result.confidence)


def test_projection_set_for_empty_history() -> None:
    result = generate_projection_set([])

    assert result.confidence == 0
    assert result.confidence_level == "low"
    assert result.three_months == []
