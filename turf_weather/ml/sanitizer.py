"""
Input sanitization, data quality and feature normalization for effectiveness prediction.

All functions work on camelCase weather dicts (the shape stored with
training samples), so readings from any source can be fed in.
"""

from typing import Any, Dict, Iterable, Mapping, Union

from ..errors import InvalidWeatherData
from ..models import FIELD_ALIASES, OPTIONAL_BOUNDS, PHYSICAL_BOUNDS, WeatherReading, is_number

WeatherInput = Union[WeatherReading, Mapping[str, Any]]

REQUIRED_FIELDS = {FIELD_ALIASES[name]: bounds for name, bounds in PHYSICAL_BOUNDS.items()}
OPTIONAL_FIELDS = {FIELD_ALIASES[name]: bounds for name, bounds in OPTIONAL_BOUNDS.items()}

# Neutral values used when an optional metric is missing or invalid
OPTIONAL_DEFAULTS: Dict[str, float] = {
    'soilMoisture': 50.0,
    'uvIndex': 0.0,
    'pressure': 1013.0,
    'dewPoint': 0.0,
    'visibility': 10.0,
}

# (feature, outside normal range, outside extreme range, normal factor, extreme factor)
QUALITY_PENALTIES = (
    ('temperature', lambda v: v < 0 or v > 100, lambda v: v < -20 or v > 120, 0.9, 0.8),
    ('humidity', lambda v: v < 20 or v > 90, lambda v: v < 10 or v > 95, 0.9, 0.8),
    ('windSpeed', lambda v: v > 30, lambda v: v > 40, 0.8, 0.7),
    ('precipitation', lambda v: v > 2, lambda v: v > 4, 0.9, 0.8),
    ('soilMoisture', lambda v: v < 20 or v > 80, lambda v: v < 10 or v > 90, 0.9, 0.8),
    ('uvIndex', lambda v: v > 8, lambda v: v > 10, 0.9, 0.8),
    ('pressure', lambda v: v < 980 or v > 1020, lambda v: v < 960 or v > 1040, 0.9, 0.8),
    ('dewPoint', lambda v: v < -10 or v > 30, lambda v: v < -15 or v > 35, 0.9, 0.8),
    ('visibility', lambda v: v < 2, lambda v: v < 1, 0.8, 0.7),
)

MIN_DATA_QUALITY = 0.5
MAX_INITIAL_CONFIDENCE = 0.9


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def as_weather_dict(data: WeatherInput) -> Dict[str, Any]:
    """camelCase dict view of a reading or mapping (snake_case keys accepted)"""
    if isinstance(data, WeatherReading):
        return data.to_dict()
    result: Dict[str, Any] = {}
    for attr, alias in FIELD_ALIASES.items():
        if alias in data:
            result[alias] = data[alias]
        elif attr in data:
            result[alias] = data[attr]
    if 'conditions' in data:
        result['conditions'] = data['conditions']
    return result


def sanitize(data: WeatherInput) -> Dict[str, Any]:
    """
    Clamp required fields and default invalid optional ones

    Required fields must be numbers; out-of-bounds values are clamped.
    Optional metrics that are missing, non-numeric or out of range fall back
    to neutral defaults (cloud cover has no default and is dropped instead).

    Raises:
        InvalidWeatherData: a required field is missing or not a number
    """
    raw = as_weather_dict(data)
    clean: Dict[str, Any] = {}

    for name, (low, high) in REQUIRED_FIELDS.items():
        value = raw.get(name)
        if not is_number(value):
            raise InvalidWeatherData(f"{name} must be a number, got {value!r}")
        clean[name] = _clamp(float(value), low, high)

    for name, (low, high) in OPTIONAL_FIELDS.items():
        value = raw.get(name)
        if is_number(value) and low <= value <= high:
            clean[name] = float(value)
        elif name in OPTIONAL_DEFAULTS:
            clean[name] = OPTIONAL_DEFAULTS[name]

    clean['conditions'] = raw.get('conditions') or 'Unknown'
    return clean


def present_features(data: Mapping[str, Any], features: Iterable[str]) -> int:
    return sum(1 for f in features if is_number(data.get(f)))


def data_quality(data: WeatherInput, expected_features: Iterable[str]) -> float:
    """
    Quality score in [0.5, 1] for a raw (unsanitized) reading

    Each metric outside its normal range costs a multiplicative penalty,
    a second one when it is also outside the extreme range. The result is
    scaled by the share of expected features present.
    """
    raw = as_weather_dict(data)
    expected = list(expected_features)
    quality = 1.0

    for feature, outside_normal, outside_extreme, normal_factor, extreme_factor in QUALITY_PENALTIES:
        value = raw.get(feature)
        if not is_number(value):
            continue
        if outside_normal(value):
            quality *= normal_factor
        if outside_extreme(value):
            quality *= extreme_factor

    if expected:
        quality *= present_features(raw, expected) / len(expected)

    return max(quality, MIN_DATA_QUALITY)


def initial_confidence(quality: float) -> float:
    return min(quality * 0.9, MAX_INITIAL_CONFIDENCE)


def has_extreme_values(data: Mapping[str, Any]) -> bool:
    soil = data.get('soilMoisture')
    return (
        data['temperature'] < 0 or data['temperature'] > 100
        or data['humidity'] < 20 or data['humidity'] > 90
        or data['windSpeed'] > 30
        or data['precipitation'] > 2
        or (is_number(soil) and (soil < 20 or soil > 80))
    )


def normalize_feature(feature: str, value: float) -> float:
    """Map a feature value onto [0, 1]"""
    if feature == 'temperature':
        scaled = (value + 50) / 200
    elif feature in ('humidity', 'soilMoisture', 'cloudCover'):
        scaled = value / 100
    elif feature == 'precipitation':
        scaled = value / 2
    elif feature == 'windSpeed':
        scaled = value / 30
    elif feature == 'uvIndex':
        scaled = value / 11
    elif feature == 'pressure':
        scaled = (value - 950) / 100
    elif feature == 'dewPoint':
        scaled = (value + 20) / 60
    elif feature == 'visibility':
        scaled = value / 10
    else:
        scaled = value
    return _clamp(scaled, 0.0, 1.0)
