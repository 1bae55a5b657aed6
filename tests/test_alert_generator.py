"""
Tests for turf_weather.processors.alert_generator
"""

import pytest

from conftest import LOCATION, START, perfect_reading
from turf_weather.errors import UnknownTreatmentType
from turf_weather.processors import AlertGenerator


@pytest.fixture
def generator(clock):
    return AlertGenerator(clock=clock, id_factory=lambda: 'alert-id')


def generate(generator, reading, treatment_type='Fertilization'):
    return generator.generate(reading, treatment_type, 't-1', LOCATION, START)


# =========================================================================
# 1. Single metric violations
# =========================================================================
class TestViolations:

    def test_no_alert_within_tolerance(self, generator):
        assert generate(generator, perfect_reading()) is None

    def test_temperature_above_max_is_critical(self, generator):
        alert = generate(generator, perfect_reading(temperature=35))
        assert alert.kind == 'temperature'
        assert alert.severity == 'critical'
        assert alert.priority == 5
        assert 'too high' in alert.message

    def test_temperature_below_min(self, generator):
        alert = generate(generator, perfect_reading(temperature=2))
        assert alert.kind == 'temperature'
        assert 'too low' in alert.message

    def test_wind_violation(self, generator):
        alert = generate(generator, perfect_reading(wind_speed=20))
        assert (alert.kind, alert.severity, alert.priority) == ('wind', 'warning', 4)

    def test_precipitation_violation(self, generator):
        alert = generate(generator, perfect_reading(precipitation=6))
        assert (alert.kind, alert.severity, alert.priority) == ('precipitation', 'warning', 4)

    @pytest.mark.parametrize('overrides, kind', [
        ({'uv_index': 9}, 'uv'),
        ({'soil_moisture': 10}, 'soil'),
        ({'soil_moisture': 90}, 'soil'),
        ({'dew_point': 20}, 'dewpoint'),
    ])
    def test_optional_metric_violations(self, generator, overrides, kind):
        alert = generate(generator, perfect_reading(**overrides))
        assert alert.kind == kind
        assert alert.severity == 'warning'
        assert alert.priority == 3

    def test_non_ideal_conditions_lowest_priority(self, generator):
        alert = generate(generator, perfect_reading(conditions='Rain'))
        assert alert.kind == 'conditions'
        assert alert.priority == 1


# =========================================================================
# 2. Single-alert rule
# =========================================================================
class TestSingleAlert:

    def test_temperature_and_wind_yield_one_temperature_alert(self, generator):
        alert = generate(generator, perfect_reading(temperature=35, wind_speed=30))
        assert alert.kind == 'temperature'
        assert alert.priority == 5

    def test_tie_goes_to_declaration_order(self, generator):
        alert = generate(generator, perfect_reading(wind_speed=20, precipitation=10))
        assert alert.kind == 'wind'

    def test_candidates_lists_every_violation(self, generator):
        from turf_weather.profiles import get_profile

        found = generator.candidates(perfect_reading(temperature=35, wind_speed=30, conditions='Rain'),
                                     get_profile('Fertilization'))
        assert [c.kind for c in found] == ['temperature', 'wind', 'conditions']


# =========================================================================
# 3. Alert content
# =========================================================================
class TestAlertContent:

    def test_alert_carries_context_and_snapshot(self, generator):
        reading = perfect_reading(temperature=35, soil_moisture=50)
        alert = generate(generator, reading)
        assert alert.id == 'alert-id'
        assert alert.treatment_id == 't-1'
        assert alert.treatment_type == 'Fertilization'
        assert alert.location == LOCATION
        assert alert.original_date == START
        assert alert.created_at == START
        assert alert.metrics['temperature'] == 35
        assert alert.metrics['soilMoisture'] == 50
        assert alert.metrics['windSpeed'] == 5.0

    def test_treatment_type_is_canonicalized(self, generator):
        alert = generate(generator, perfect_reading(wind_speed=20), treatment_type='weed_control')
        assert alert.treatment_type == 'Weed Control'

    def test_to_dict_uses_external_names(self, generator):
        data = generate(generator, perfect_reading(temperature=35)).to_dict()
        assert data['type'] == 'temperature'
        assert data['treatmentId'] == 't-1'
        assert data['suggestedDate'] is None

    def test_unknown_treatment_type(self, generator):
        with pytest.raises(UnknownTreatmentType):
            generate(generator, perfect_reading(), treatment_type='Painting')
