"""
Treatment tolerance profiles.

Static per-treatment-type weather thresholds. Every entry point resolves the
treatment type here first; an unknown type raises UnknownTreatmentType.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple

from .errors import UnknownTreatmentType


@dataclass(frozen=True)
class MetricRange:
    min: float
    max: float

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True)
class TreatmentToleranceProfile:
    name: str
    min_temp: float  # °C
    max_temp: float
    max_wind_speed: float  # km/h
    max_precipitation: float  # mm
    ideal_conditions: FrozenSet[str]
    uv_index: MetricRange
    soil_moisture: MetricRange  # % saturation
    dew_point: MetricRange  # °C
    pressure: MetricRange  # hPa
    visibility: MetricRange  # km
    priority: int  # base priority of the treatment type

    @property
    def optimal_temp(self) -> float:
        return (self.min_temp + self.max_temp) / 2


TREATMENT_PROFILES: Dict[str, TreatmentToleranceProfile] = {
    'Fertilization': TreatmentToleranceProfile(
        name='Fertilization',
        min_temp=10,
        max_temp=29,
        max_wind_speed=15,
        max_precipitation=5,
        ideal_conditions=frozenset({'Clear', 'Partly cloudy'}),
        uv_index=MetricRange(2, 7),
        soil_moisture=MetricRange(30, 70),
        dew_point=MetricRange(5, 15),
        pressure=MetricRange(1000, 1020),
        visibility=MetricRange(5, 50),
        priority=4,
    ),
    'Weed Control': TreatmentToleranceProfile(
        name='Weed Control',
        min_temp=12,
        max_temp=30,
        max_wind_speed=10,
        max_precipitation=0,
        ideal_conditions=frozenset({'Clear', 'Partly cloudy'}),
        uv_index=MetricRange(3, 8),
        soil_moisture=MetricRange(20, 60),
        dew_point=MetricRange(8, 18),
        pressure=MetricRange(1005, 1025),
        visibility=MetricRange(8, 50),
        priority=3,
    ),
    'Mowing': TreatmentToleranceProfile(
        name='Mowing',
        min_temp=5,
        max_temp=35,
        max_wind_speed=20,
        max_precipitation=0,
        ideal_conditions=frozenset({'Clear', 'Partly cloudy', 'Cloudy'}),
        uv_index=MetricRange(0, 9),
        soil_moisture=MetricRange(10, 80),
        dew_point=MetricRange(2, 20),
        pressure=MetricRange(995, 1030),
        visibility=MetricRange(3, 50),
        priority=2,
    ),
    'Seeding': TreatmentToleranceProfile(
        name='Seeding',
        min_temp=8,
        max_temp=26,
        max_wind_speed=12,
        max_precipitation=2,
        ideal_conditions=frozenset({'Partly cloudy', 'Cloudy'}),
        uv_index=MetricRange(1, 5),
        soil_moisture=MetricRange(40, 80),
        dew_point=MetricRange(6, 14),
        pressure=MetricRange(1008, 1022),
        visibility=MetricRange(5, 50),
        priority=5,
    ),
    'Aeration': TreatmentToleranceProfile(
        name='Aeration',
        min_temp=10,
        max_temp=30,
        max_wind_speed=25,
        max_precipitation=2,
        ideal_conditions=frozenset({'Clear', 'Partly cloudy', 'Cloudy'}),
        uv_index=MetricRange(0, 9),
        soil_moisture=MetricRange(40, 70),
        dew_point=MetricRange(2, 18),
        pressure=MetricRange(995, 1030),
        visibility=MetricRange(3, 50),
        priority=3,
    ),
}


def _key(name: str) -> str:
    return re.sub(r'[\s_\-]+', '', name or '').lower()


_LOOKUP: Dict[str, str] = {_key(name): name for name in TREATMENT_PROFILES}


def resolve_treatment_type(treatment_type: str) -> str:
    """Canonical profile name for a treatment type ("weed_control" -> "Weed Control")"""
    if not isinstance(treatment_type, str):
        raise UnknownTreatmentType(repr(treatment_type))
    name = _LOOKUP.get(_key(treatment_type))
    if name is None:
        raise UnknownTreatmentType(treatment_type)
    return name


def get_profile(treatment_type: str) -> TreatmentToleranceProfile:
    return TREATMENT_PROFILES[resolve_treatment_type(treatment_type)]


def supported_treatment_types() -> Tuple[str, ...]:
    return tuple(TREATMENT_PROFILES)
