"""
Configuration for the treatment weather engine
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

# Bounds for monitoring/batching configuration
MIN_CHECK_INTERVAL = 15  # minutes
MAX_CHECK_INTERVAL = 360  # 6 hours
MIN_FORECAST_HOURS = 24
MAX_FORECAST_HOURS = 168  # 7 days
MIN_BATCH_WINDOW = 5  # minutes
MAX_BATCH_WINDOW = 60
MAX_ALERTS_PER_BATCH = 20

DEFAULT_FEATURE_WEIGHTS: Dict[str, float] = {
    'temperature': 1.0,
    'humidity': 0.8,
    'precipitation': 1.0,
    'windSpeed': 0.6,
    'cloudCover': 0.4,
    'soilMoisture': 0.9,
}


class MonitorConfig(BaseModel):
    """Monitoring, alerting and batching limits"""

    check_interval: int = Field(30, ge=MIN_CHECK_INTERVAL, le=MAX_CHECK_INTERVAL)
    alert_threshold: float = Field(3, ge=1, le=5)
    forecast_hours: int = Field(48, ge=MIN_FORECAST_HOURS, le=MAX_FORECAST_HOURS)
    batch_window: int = Field(15, ge=MIN_BATCH_WINDOW, le=MAX_BATCH_WINDOW)
    max_alerts_per_batch: int = Field(10, ge=1, le=MAX_ALERTS_PER_BATCH)
    min_alert_priority: int = Field(2, ge=1, le=5)

    def merged(self, **overrides: Any) -> 'MonitorConfig':
        """Return a validated copy with the non-None overrides applied"""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return MonitorConfig(**values)


class MLConfig(BaseModel):
    """Effectiveness prediction settings"""

    min_data_points: int = Field(50, ge=1)
    confidence_threshold: float = Field(0.7, ge=0, le=1)
    training_interval_hours: float = Field(24, gt=0)
    feature_weights: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_FEATURE_WEIGHTS))
    max_training_samples: int = Field(1000, ge=1)
    min_sample_quality: float = Field(0.7, ge=0, le=1)
    good_outcome_threshold: float = Field(0.7, ge=0, le=1)


class Settings(BaseSettings):
    """Process settings loaded from TURF_* environment variables"""

    log_level: str = 'INFO'

    # Open-Meteo API
    openmeteo_api_url: str = 'https://api.open-meteo.com/v1'
    request_timeout: float = 30.0

    # Metrics
    metrics_host: str = '0.0.0.0'
    metrics_port: int = 9110

    # Training-sample store (in-memory when unset)
    postgres_url: Optional[str] = None

    # Alert delivery (log-only when unset)
    alert_webhook_url: Optional[str] = None
    alert_webhook_token: Optional[str] = None

    # Monitoring defaults
    check_interval: int = 30
    alert_threshold: float = 3
    forecast_hours: int = 48
    batch_window: int = 15
    max_alerts_per_batch: int = 10
    min_alert_priority: int = 2

    # Prediction defaults
    ml_min_data_points: int = 50
    ml_confidence_threshold: float = 0.7
    ml_training_interval_hours: float = 24

    class Config:
        env_prefix = "TURF_"
        env_file = ".env"
        case_sensitive = False

    def monitor_config(self) -> MonitorConfig:
        return MonitorConfig(
            check_interval=self.check_interval,
            alert_threshold=self.alert_threshold,
            forecast_hours=self.forecast_hours,
            batch_window=self.batch_window,
            max_alerts_per_batch=self.max_alerts_per_batch,
            min_alert_priority=self.min_alert_priority,
        )

    def ml_config(self) -> MLConfig:
        return MLConfig(
            min_data_points=self.ml_min_data_points,
            confidence_threshold=self.ml_confidence_threshold,
            training_interval_hours=self.ml_training_interval_hours,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
