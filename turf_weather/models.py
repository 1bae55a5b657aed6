"""
Domain models for weather readings, alerts, sessions and predictions
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidWeatherData

logger = logging.getLogger(__name__)

AlertKind = Literal['temperature', 'wind', 'precipitation', 'conditions', 'uv', 'soil', 'dewpoint']
AlertSeverity = Literal['warning', 'critical']
Impact = Literal['positive', 'negative', 'neutral']

# Physical bounds for the required fields (inclusive)
PHYSICAL_BOUNDS: Dict[str, Tuple[float, float]] = {
    'temperature': (-50.0, 150.0),
    'humidity': (0.0, 100.0),
    'precipitation': (0.0, 100.0),
    'wind_speed': (0.0, 200.0),
}

# Accepted range for optional metrics
OPTIONAL_BOUNDS: Dict[str, Tuple[float, float]] = {
    'uv_index': (0.0, 11.0),
    'soil_moisture': (0.0, 100.0),
    'pressure': (950.0, 1050.0),
    'dew_point': (-20.0, 40.0),
    'visibility': (0.0, 10.0),
    'cloud_cover': (0.0, 100.0),
}

# Reading attribute -> external (camelCase) name
FIELD_ALIASES: Dict[str, str] = {
    'temperature': 'temperature',
    'humidity': 'humidity',
    'precipitation': 'precipitation',
    'wind_speed': 'windSpeed',
    'uv_index': 'uvIndex',
    'soil_moisture': 'soilMoisture',
    'dew_point': 'dewPoint',
    'pressure': 'pressure',
    'visibility': 'visibility',
    'cloud_cover': 'cloudCover',
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_number(value: Any) -> bool:
    """True for finite int/float values (bool excluded)"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    timezone: str = 'UTC'

    def tzinfo(self) -> tzinfo:
        """Resolve the IANA timezone, falling back to UTC"""
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{self.timezone}', using UTC")
            return timezone.utc

    def to_dict(self) -> Dict[str, Any]:
        return {'latitude': self.latitude, 'longitude': self.longitude, 'timezone': self.timezone}


@dataclass(frozen=True)
class WeatherReading:
    """Observed or forecast weather at a single point in time"""

    temperature: float
    humidity: float
    precipitation: float
    wind_speed: float
    conditions: str = 'Unknown'
    uv_index: Optional[float] = None
    soil_moisture: Optional[float] = None
    dew_point: Optional[float] = None
    pressure: Optional[float] = None
    visibility: Optional[float] = None
    cloud_cover: Optional[float] = None

    def validate(self) -> None:
        """
        Reject readings with malformed or out-of-bounds values

        Raises:
            InvalidWeatherData: if any value is not a number or out of range
        """
        for name, (low, high) in PHYSICAL_BOUNDS.items():
            value = getattr(self, name)
            if not is_number(value):
                raise InvalidWeatherData(f"{FIELD_ALIASES[name]} must be a number, got {value!r}")
            if not low <= value <= high:
                raise InvalidWeatherData(
                    f"{FIELD_ALIASES[name]} out of range: {value} (expected {low}..{high})"
                )

        # Optional metrics only need to be numeric; their ranges are a sanitizer concern
        for name in OPTIONAL_BOUNDS:
            value = getattr(self, name)
            if value is not None and not is_number(value):
                raise InvalidWeatherData(f"{FIELD_ALIASES[name]} must be a number, got {value!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'WeatherReading':
        """Build a reading from camelCase or snake_case keys (no validation)"""
        values: Dict[str, Any] = {}
        for attr, alias in FIELD_ALIASES.items():
            if attr in data:
                values[attr] = data[attr]
            elif alias in data:
                values[attr] = data[alias]
        missing = [FIELD_ALIASES[k] for k in PHYSICAL_BOUNDS if k not in values]
        if missing:
            raise InvalidWeatherData(f"Missing required weather fields: {missing}")
        values['conditions'] = data.get('conditions') or 'Unknown'
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """camelCase snapshot, omitting absent optional metrics"""
        result: Dict[str, Any] = {'conditions': self.conditions}
        for attr, alias in FIELD_ALIASES.items():
            value = getattr(self, attr)
            if value is not None:
                result[alias] = value
        return result


@dataclass(frozen=True)
class ForecastPoint:
    date: datetime
    reading: WeatherReading
    precipitation_probability: float = 0.0


@dataclass(frozen=True)
class WeatherAlert:
    id: str
    treatment_id: str
    treatment_type: str
    kind: AlertKind
    severity: AlertSeverity
    priority: int
    message: str
    created_at: datetime
    location: Location
    original_date: datetime
    metrics: Dict[str, Any] = field(default_factory=dict)
    suggested_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'treatmentId': self.treatment_id,
            'treatmentType': self.treatment_type,
            'type': self.kind,
            'severity': self.severity,
            'priority': self.priority,
            'message': self.message,
            'createdAt': self.created_at.isoformat(),
            'location': self.location.to_dict(),
            'originalDate': self.original_date.isoformat(),
            'suggestedDate': self.suggested_date.isoformat() if self.suggested_date else None,
            'metrics': dict(self.metrics),
        }


@dataclass
class AlertBatch:
    id: str
    created_at: datetime
    alerts: List[WeatherAlert] = field(default_factory=list)
    treatment_ids: List[str] = field(default_factory=list)
    processed_at: Optional[datetime] = None

    @property
    def priority(self) -> int:
        return max((a.priority for a in self.alerts), default=0)

    def __len__(self) -> int:
        return len(self.alerts)


@dataclass(frozen=True)
class TrainingSample:
    weather_conditions: Dict[str, Any]
    treatment_type: str
    effectiveness: int
    timestamp: datetime
    data_quality: float
    confidence: float

    @property
    def normalized_effectiveness(self) -> float:
        """1-5 rating mapped onto [0, 1]"""
        return (self.effectiveness - 1) / 4.0


@dataclass(frozen=True)
class ModelMetrics:
    accuracy: float
    precision: float
    recall: float
    f1_score: float
    data_points: int
    last_updated: datetime


@dataclass(frozen=True)
class ImpactFactor:
    name: str
    weight: float
    impact: Impact
    confidence: float


@dataclass(frozen=True)
class PredictionResult:
    score: float
    confidence: float
    factors: List[ImpactFactor] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    historical_score: Optional[float] = None


@dataclass(frozen=True)
class RescheduleOption:
    date: datetime
    score: float
    conditions: WeatherReading


@dataclass(frozen=True)
class WeatherRecommendation:
    score: int
    recommendations: List[str]
    alternative_dates: List[datetime] = field(default_factory=list)


@dataclass(frozen=True)
class TreatmentEffectiveness:
    score: float
    factors: Dict[str, float]
    recommendations: List[str]
