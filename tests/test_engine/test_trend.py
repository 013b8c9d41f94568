"""
Trend, Seasonality & Forecast Tests.
"""

import pytest

from execsight.engine.series import StatStatus
from execsight.engine.trend import (
    TrendDirection,
    analyze_trend,
    detect_seasonality,
    forecast_trend,
    linear_slope,
    relative_growth,
    volatility,
)


class TestTrend:
    def test_upward(self):
        result = analyze_trend([100, 110, 120, 130])
        assert result.direction == TrendDirection.UPWARD
        assert result.growth == pytest.approx(20 / 105)
        assert result.strength == 1.0
        assert result.slope == pytest.approx(10.0)

    def test_downward(self):
        result = analyze_trend([100, 90, 80, 70, 60, 50])
        assert result.direction == TrendDirection.DOWNWARD
        assert result.status == StatStatus.OK

    def test_stable_band(self):
        result = analyze_trend([100, 100.2, 99.9, 100.1])
        assert result.direction == TrendDirection.STABLE

    def test_insufficient(self):
        result = analyze_trend([5])
        assert result.status == StatStatus.INSUFFICIENT_DATA
        assert result.growth is None

    def test_zero_baseline_uses_slope(self):
        result = analyze_trend([0, 0, 5, 10])
        assert result.direction == TrendDirection.UPWARD
        assert result.growth is None

    def test_helpers_degenerate(self):
        assert relative_growth([1]) is None
        assert linear_slope([]) is None


    def test_overflowing_slope(self):
        result = analyze_trend([1e308, -1e308, 1e308, -1e308])
        assert result.status == StatStatus.OVERFLOW
        assert result.slope is None
        assert result.direction == TrendDirection.STABLE


class TestSeasonality:
    def test_quarterly_pattern(self):
        values = [10, 20, 30, 40] * 3
        result = detect_seasonality(values)
        assert result.has_seasonality
        assert result.period == 4

    def test_too_short(self):
        assert not detect_seasonality([10, 20, 30, 40]).has_seasonality

    def test_no_pattern(self):
        assert not detect_seasonality([1, 5, 2, 40, 3, 90, 7, 200, 11]).has_seasonality


class TestForecast:
    def test_compounds_growth(self):
        forecast = forecast_trend([100, 100, 110, 110], periods=2)
        assert forecast == pytest.approx([121.0, 133.1])

    def test_empty(self):
        assert forecast_trend([], 3) == []
        assert forecast_trend([1, 2], 0) == []


class TestVolatility:
    def test_constant_growth_has_zero_volatility(self):
        assert volatility([100, 110, 121, 133.1]) == pytest.approx(0.0, abs=1e-9)

    def test_insufficient(self):
        assert volatility([5, 6]) is None
