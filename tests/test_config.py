"""
Tests for turf_weather.config
"""

import pytest
from pydantic import ValidationError

from turf_weather.config import MLConfig, MonitorConfig, Settings, get_settings


class TestMonitorConfig:

    def test_defaults(self):
        config = MonitorConfig()
        assert config.check_interval == 30
        assert config.alert_threshold == 3
        assert config.forecast_hours == 48
        assert config.batch_window == 15
        assert config.max_alerts_per_batch == 10
        assert config.min_alert_priority == 2

    @pytest.mark.parametrize('field, value', [
        ('check_interval', 14), ('check_interval', 361),
        ('forecast_hours', 23), ('forecast_hours', 169),
        ('batch_window', 4), ('batch_window', 61),
        ('max_alerts_per_batch', 0), ('max_alerts_per_batch', 21),
        ('alert_threshold', 0.5), ('min_alert_priority', 6),
    ])
    def test_bounds_enforced(self, field, value):
        with pytest.raises(ValidationError):
            MonitorConfig(**{field: value})

    def test_merged_ignores_none(self):
        merged = MonitorConfig().merged(check_interval=60, forecast_hours=None)
        assert merged.check_interval == 60
        assert merged.forecast_hours == 48

    def test_merged_validates(self):
        with pytest.raises(ValueError):
            MonitorConfig().merged(batch_window=120)


class TestSettings:

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv('TURF_CHECK_INTERVAL', '60')
        monkeypatch.setenv('TURF_ML_MIN_DATA_POINTS', '10')
        monkeypatch.setenv('TURF_LOG_LEVEL', 'DEBUG')
        settings = Settings()
        assert settings.log_level == 'DEBUG'
        assert settings.monitor_config().check_interval == 60
        assert settings.ml_config().min_data_points == 10

    def test_ml_defaults(self):
        config = MLConfig()
        assert config.min_data_points == 50
        assert config.confidence_threshold == 0.7
        assert config.feature_weights['temperature'] == 1.0
        assert set(config.feature_weights) == {
            'temperature', 'humidity', 'precipitation', 'windSpeed', 'cloudCover', 'soilMoisture',
        }

    def test_get_settings_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()
