"""Numeric forecasting strategies - exploratory projections over a value series"""

import logging
from typing import Optional, Sequence

import numpy as np

from gestor_finance.domain.models import ForecastResult

DEFAULT_VOLATILITY_THRESHOLD = 0.25
DEFAULT_SMOOTHING_ALPHA = 0.3


def moving_average_forecast(data: Sequence[float], periods: int = 3) -> float:
    """Mean of the last min(periods, len(data)) points"""
    if len(data) == 0:
        return 0.0

    periods_to_use = min(periods, len(data))
    return float(np.mean(np.asarray(data[-periods_to_use:], dtype=float)))


def exponential_smoothing_forecast(data: Sequence[float], alpha: float = DEFAULT_SMOOTHING_ALPHA) -> float:
    """
    Simple exponential smoothing: S_t = alpha * x_t + (1 - alpha) * S_{t-1}.

    Seeded with S_0 = x_0; higher alpha weighs recent observations more.
    """
    if len(data) == 0:
        return 0.0

    forecast = float(data[0])
    for value in data[1:]:
        forecast = alpha * float(value) + (1 - alpha) * forecast
    return forecast


def weighted_moving_average_forecast(data: Sequence[float], weights: Optional[Sequence[float]] = None) -> float:
    """
    Dot product of the series with weights.

    Without weights (or with weights of the wrong length) a linear ramp is
    used: w_i = (i + 1) / sum(1..n), so the most recent point weighs most.
    """
    if len(data) == 0:
        return 0.0

    values = np.asarray(data, dtype=float)
    if weights is None or len(weights) != len(values):
        n = len(values)
        ramp = np.arange(1, n + 1, dtype=float)
        weight_array = ramp / (n * (n + 1) / 2)
    else:
        weight_array = np.asarray(weights, dtype=float)

    return float(np.dot(values, weight_array))


def coefficient_of_variation(data: Sequence[float]) -> float:
    """
    Population standard deviation over mean.

    A zero-mean series is infinitely volatile when it varies at all, and
    flat (0.0) otherwise.
    """
    values = np.asarray(data, dtype=float)
    mean = float(np.mean(values))
    std = float(np.std(values))
    if mean == 0:
        return float("inf") if std > 0 else 0.0
    return std / mean


def best_forecast(
    data: Sequence[float],
    volatility_threshold: float = DEFAULT_VOLATILITY_THRESHOLD,
    alpha: float = DEFAULT_SMOOTHING_ALPHA,
) -> tuple[float, str]:
    """
    Pick a strategy from the series shape and return (forecast, method).

    - fewer than 3 points: plain average
    - volatile (CV above threshold): exponential smoothing
    - otherwise: weighted moving average
    """
    if len(data) == 0:
        return 0.0, "none"

    if len(data) < 3:
        return float(np.mean(np.asarray(data, dtype=float))), "average"

    if coefficient_of_variation(data) > volatility_threshold:
        return exponential_smoothing_forecast(data, alpha), "exponential_smoothing"

    return weighted_moving_average_forecast(data), "weighted_moving_average"


def reliability_label(points: int) -> str:
    if points >= 12:
        return "high"
    if points >= 6:
        return "medium"
    if points > 0:
        return "low"
    return "unreliable"


def forecast_with_reliability(
    data: Sequence[float],
    volatility_threshold: float = DEFAULT_VOLATILITY_THRESHOLD,
    alpha: float = DEFAULT_SMOOTHING_ALPHA,
) -> ForecastResult:
    """
    Forecast the next value and label how much history backs it.

    Computation errors never propagate: they degrade to the last known
    value labelled "unreliable".
    """
    if len(data) == 0:
        return ForecastResult(forecast=0.0, reliability="unreliable", method="none")

    try:
        forecast, method = best_forecast(data, volatility_threshold, alpha)
    except (ValueError, TypeError) as e:
        logging.warning(f"Forecast degraded to last known value: {e}")
        return ForecastResult(forecast=float(data[-1]), reliability="unreliable", method="last_value")

    return ForecastResult(forecast=forecast, reliability=reliability_label(len(data)), method=method)
