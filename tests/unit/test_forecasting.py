"""Unit tests for numeric forecasting strategies"""

import pytest
from gestor_finance.domain.forecasting import (
    best_forecast,
    coefficient_of_variation,
    exponential_smoothing_forecast,
    forecast_with_reliability,
    moving_average_forecast,
    reliability_label,
    weighted_moving_average_forecast,
)


def test_moving_average_uses_last_points():
    assert moving_average_forecast([10, 20, 30, 40]) == pytest.approx(30.0)
    assert moving_average_forecast([10, 20], periods=3) == pytest.approx(15.0)
    assert moving_average_forecast([]) == 0.0


def test_exponential_smoothing_seeded_with_first_value():
    # S0 = 100, S1 = 0.5 * 200 + 0.5 * 100 = 150
    assert exponential_smoothing_forecast([100, 200], alpha=0.5) == pytest.approx(150.0)
    assert exponential_smoothing_forecast([42]) == pytest.approx(42.0)


def test_weighted_moving_average_linear_ramp():
    # weights 1/6, 2/6, 3/6
    assert weighted_moving_average_forecast([60, 120, 180]) == pytest.approx(140.0)


def test_weighted_moving_average_replaces_mismatched_weights():
    assert weighted_moving_average_forecast([60, 120, 180], weights=[1.0]) == pytest.approx(140.0)
    assert weighted_moving_average_forecast([10, 20], weights=[0.5, 0.5]) == pytest.approx(15.0)


def test_coefficient_of_variation_zero_mean():
    assert coefficient_of_variation([-100, 0, 100]) == float("inf")
    assert coefficient_of_variation([0, 0, 0]) == 0.0


def test_best_forecast_strategy_selection():
    assert best_forecast([]) == (0.0, "none")
    assert best_forecast([100, 200]) == (pytest.approx(150.0), "average")
    assert best_forecast([100, 102, 98, 101])[1] == "weighted_moving_average"
    assert best_forecast([10, 500, 20, 800])[1] == "exponential_smoothing"


@pytest.mark.parametrize("points,label", [(0, "unreliable"), (1, "low"), (5, "low"), (6, "medium"), (12, "high"), (24, "high")])
def test_reliability_label(points, label):
    assert reliability_label(points) == label


def test_forecast_with_reliability_empty():
    result = forecast_with_reliability([])
    assert (result.forecast, result.reliability, result.method) == (0.0, "unreliable", "none")


def test_forecast_with_reliability_labels_by_history_length():
    stable = [1000 + (i % 2) for i in range(12)]
    assert forecast_with_reliability(stable).reliability == "high"
    assert forecast_with_reliability(stable[:6]).reliability == "medium"


def test_forecast_with_reliability_zero_mean_net_flows():
    swinging = forecast_with_reliability([-100, 0, 100])
    assert swinging.method == "exponential_smoothing"
    assert swinging.reliability == "low"
    # S = -100, then -70, then 0.3 * 100 + 0.7 * -70
    assert swinging.forecast == pytest.approx(-19.0)

    flat = forecast_with_reliability([0, 0, 0, 0])
    assert (flat.forecast, flat.reliability, flat.method) == (0.0, "low", "weighted_moving_average")


def test_forecast_with_reliability_degrades_to_last_value():
    """Values that are not numbers cannot be scored"""
    result = forecast_with_reliability(["n/a", "missing", "7"])
    assert result.forecast == 7.0
    assert result.reliability == "unreliable"
    assert result.method == "last_value"
