"""Trend projection over monthly series.

Pure functions over plain floats: one least-squares line, a residual band that
widens with the horizon, and a 0-100 confidence score. No database access.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from accountcore.services.historical import MonthlyDataPoint


MIN_POINTS_FOR_PREDICTION = 3
PROJECTION_HORIZONS = (3, 6, 12)
Z_95 = 1.96
BAND_GROWTH_PER_MONTH = 0.1
HIGH_CONFIDENCE = 80
MEDIUM_CONFIDENCE = 50


@dataclass(frozen=True)
class RegressionResult:
    slope: float
    intercept: float
    r_squared: float

    def at(self, x: float) -> float:
        return self.slope * x + self.intercept


@dataclass(frozen=True)
class ProjectedValue:
    month: str
    value: float
    lower_bound: float
    upper_bound: float


@dataclass(frozen=True)
class ProjectionSet:
    historical: list[MonthlyDataPoint]
    confidence: int
    confidence_level: str
    three_months: list[ProjectedValue] = field(default_factory=list)
    six_months: list[ProjectedValue] = field(default_factory=list)
    twelve_months: list[ProjectedValue] = field(default_factory=list)


def linear_regression(series: list[float]) -> RegressionResult:
    n = len(series)
    if n == 0:
        return RegressionResult(slope=0.0, intercept=0.0, r_squared=0.0)
    if n == 1:
        return RegressionResult(slope=0.0, intercept=float(series[0]), r_squared=1.0)

    x_mean = (n - 1) / 2
    y_mean = sum(series) / n
    numerator = 0.0
    denominator = 0.0
    for index, value in enumerate(series):
        numerator += (index - x_mean) * (value - y_mean)
        denominator += (index - x_mean) ** 2
    slope = numerator / denominator if denominator != 0 else 0.0
    intercept = y_mean - slope * x_mean

    ss_res = 0.0
    ss_tot = 0.0
    for index, value in enumerate(series):
        ss_res += (value - (slope * index + intercept)) ** 2
        ss_tot += (value - y_mean) ** 2
    r_squared = 1 - ss_res / ss_tot if ss_tot != 0 else 1.0
    return RegressionResult(slope=slope, intercept=intercept, r_squared=max(0.0, min(1.0, r_squared)))


def moving_average(series: list[float], window: int) -> list[float]:
    if window < 1:
        raise ValueError("window must be at least 1.")
    averages: list[float] = []
    for index in range(len(series)):
        chunk = series[max(0, index - window + 1) : index + 1]
        averages.append(sum(chunk) / len(chunk))
    return averages


def residual_standard_error(series: list[float], regression: RegressionResult) -> float:
    n = len(series)
    if n <= 2:
        return 0.0
    squared = sum((value - regression.at(index)) ** 2 for index, value in enumerate(series))
    return math.sqrt(squared / (n - 2))


def coefficient_of_variation(series: list[float]) -> float:
    if not series:
        return 0.0
    mean = sum(series) / len(series)
    if mean == 0:
        return 0.0
    variance = sum((value - mean) ** 2 for value in series) / len(series)
    return abs(math.sqrt(variance) / mean)


def add_months(label: str, months: int) -> str:
    year, month = (int(part) for part in label.split("-")[:2])
    total = year * 12 + (month - 1) + months
    return f"{total // 12:04d}-{total % 12 + 1:02d}"


def project(historical: list[MonthlyDataPoint], horizon: int) -> list[ProjectedValue]:
    if not historical or horizon <= 0:
        return []
    values = [point.value for point in historical]
    regression = linear_regression(values)
    error = residual_standard_error(values, regression)
    last_index = len(values) - 1
    last_month = historical[-1].month

    projected: list[ProjectedValue] = []
    for step in range(1, horizon + 1):
        predicted = max(0.0, regression.at(last_index + step))
        margin = error * Z_95 * (1 + BAND_GROWTH_PER_MONTH * (step - 1))
        projected.append(
            ProjectedValue(
                month=add_months(last_month, step),
                value=predicted,
                lower_bound=max(0.0, predicted - margin),
                upper_bound=predicted + margin,
            )
        )
    return projected


def confidence(series: list[float]) -> int:
    n = len(series)
    if n < MIN_POINTS_FOR_PREDICTION:
        return 0
    fit_score = linear_regression(series).r_squared * 50
    sample_score = min(30.0, 30 * n / 24)
    volatility_penalty = min(20.0, 20 * coefficient_of_variation(series))
    score = math.floor(fit_score + sample_score - volatility_penalty + 20 + 0.5)
    return max(0, min(100, score))


def confidence_level(score: int) -> str:
    if score >= HIGH_CONFIDENCE:
        return "high"
    if score >= MEDIUM_CONFIDENCE:
        return "medium"
    return "low"


def generate_projection_set(historical: list[MonthlyDataPoint]) -> ProjectionSet:
    score = confidence([point.value for point in historical])
    three, six, twelve = (project(historical, horizon) for horizon in PROJECTION_HORIZONS)
    return ProjectionSet(
        historical=list(historical),
        confidence=score,
        confidence_level=confidence_level(score),
        three_months=three,
        six_months=six,
        twelve_months=twelve,
    )
