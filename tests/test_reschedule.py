"""
Tests for turf_weather.planner.reschedule
"""

from datetime import timedelta

import pytest

from conftest import START, bad_reading, perfect_reading
from turf_weather.config import MonitorConfig
from turf_weather.errors import GatewayUnavailable, NoSuitableWindowFound, UnknownTreatmentType
from turf_weather.models import ForecastPoint
from turf_weather.planner import RescheduleOptimizer, time_of_day_adjustment


def at_hour(hour, reading, day=0):
    return ForecastPoint(date=START + timedelta(days=day, hours=hour), reading=reading)


@pytest.fixture
def optimizer(gateway):
    return RescheduleOptimizer(gateway, config=MonitorConfig(alert_threshold=3))


# =========================================================================
# 1. Time-of-day adjustment
# =========================================================================
class TestTimeOfDay:

    @pytest.mark.parametrize('hour, expected', [
        (5, 0.0), (6, 0.5), (9, 0.5), (10, 0.0), (11, -0.3),
        (15, -0.3), (16, 0.2), (18, 0.2), (19, 0.0),
    ])
    def test_adjustment_table(self, hour, expected):
        assert time_of_day_adjustment(hour) == expected


# =========================================================================
# 2. find_options
# =========================================================================
class TestFindOptions:

    def test_sorted_by_score_then_date(self, optimizer, gateway, location):
        gateway.forecast = [
            at_hour(12, perfect_reading()),
            at_hour(16, perfect_reading()),
            at_hour(2, perfect_reading()),
            at_hour(7, perfect_reading()),
        ]
        options = optimizer.find_options('t-1', 'Fertilization', location, START, 2)

        assert [o.score for o in options] == [5, 5, 5, pytest.approx(4.7)]
        assert [o.date.hour for o in options] == [2, 7, 16, 12]

    def test_scores_meet_threshold(self, optimizer, gateway, location):
        gateway.forecast = [
            at_hour(7, bad_reading()),
            at_hour(8, perfect_reading()),
            at_hour(12, perfect_reading(temperature=35)),
        ]
        options = optimizer.find_options('t-1', 'Fertilization', location, START, 2)

        assert [o.date.hour for o in options] == [8]
        assert all(o.score >= 3 for o in options)

    def test_scores_clamped_to_five(self, optimizer, gateway, location):
        gateway.forecast = [at_hour(7, perfect_reading())]
        (option,) = optimizer.find_options('t-1', 'Fertilization', location, START, 1)
        assert option.score == 5
        assert option.conditions == perfect_reading()

    def test_requests_days_to_check(self, optimizer, gateway, location):
        optimizer.find_options('t-1', 'Fertilization', location, START, 5)
        assert gateway.forecast_calls == [5]

    def test_invalid_points_skipped(self, optimizer, gateway, location):
        gateway.forecast = [at_hour(7, perfect_reading(temperature=500)), at_hour(8, perfect_reading())]
        options = optimizer.find_options('t-1', 'Fertilization', location, START, 1)
        assert len(options) == 1

    def test_unknown_treatment_type(self, optimizer, location):
        with pytest.raises(UnknownTreatmentType):
            optimizer.find_options('t-1', 'Painting', location, START, 1)

    def test_gateway_failure_propagates(self, optimizer, gateway, location):
        gateway.fail = True
        with pytest.raises(GatewayUnavailable):
            optimizer.find_options('t-1', 'Fertilization', location, START, 1)


# =========================================================================
# 3. find_optimal_treatment_time
# =========================================================================
class TestOptimalTime:

    def test_returns_best_date_in_window(self, optimizer, gateway, location):
        gateway.forecast = [
            at_hour(7, perfect_reading(), day=0),
            at_hour(12, perfect_reading(), day=1),
            at_hour(7, perfect_reading(), day=3),
        ]
        best = optimizer.find_optimal_treatment_time(
            location, 'Fertilization', START + timedelta(hours=8), START + timedelta(days=2)
        )
        assert best == START + timedelta(days=1, hours=12)
        assert gateway.forecast_calls == [2]

    def test_no_suitable_window(self, optimizer, gateway, location):
        gateway.forecast = [at_hour(h, bad_reading()) for h in range(24)]
        with pytest.raises(NoSuitableWindowFound):
            optimizer.find_optimal_treatment_time(location, 'Fertilization', START, START + timedelta(days=1))

    def test_empty_forecast_is_no_window(self, optimizer, location):
        with pytest.raises(NoSuitableWindowFound):
            optimizer.find_optimal_treatment_time(location, 'Fertilization', START, START + timedelta(days=1))

    def test_reversed_window_rejected(self, optimizer, location):
        with pytest.raises(ValueError):
            optimizer.find_optimal_treatment_time(location, 'Fertilization', START + timedelta(days=1), START)
