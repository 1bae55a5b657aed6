"""
Alert Generator - turn out-of-tolerance weather into a single prioritized alert
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from ..metrics import ALERTS_GENERATED_TOTAL
from ..models import Location, WeatherAlert, WeatherReading, utcnow
from ..profiles import TreatmentToleranceProfile, get_profile, resolve_treatment_type

logger = logging.getLogger(__name__)

# Non-ideal sky conditions are reported at the lowest priority so the default
# batch floor (2) filters them out unless explicitly lowered.
CONDITIONS_PRIORITY = 1


@dataclass(frozen=True)
class AlertCandidate:
    kind: str
    severity: str
    priority: int
    message: str


class AlertGenerator:
    """
    Evaluate a reading against a tolerance profile.

    Candidates are collected in a fixed order (temperature, wind,
    precipitation, uv, soil, dewpoint, conditions) and only the highest
    priority one is emitted; the earliest candidate wins a tie.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow, id_factory: Callable[[], str] = None):
        self.clock = clock
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def candidates(self, reading: WeatherReading, profile: TreatmentToleranceProfile) -> List[AlertCandidate]:
        found: List[AlertCandidate] = []

        if reading.temperature < profile.min_temp:
            found.append(AlertCandidate(
                'temperature', 'critical', 5,
                f"Temperature too low: {reading.temperature}°C (min: {profile.min_temp}°C)"
            ))
        elif reading.temperature > profile.max_temp:
            found.append(AlertCandidate(
                'temperature', 'critical', 5,
                f"Temperature too high: {reading.temperature}°C (max: {profile.max_temp}°C)"
            ))

        if reading.wind_speed > profile.max_wind_speed:
            found.append(AlertCandidate(
                'wind', 'warning', 4,
                f"Wind speed too high: {reading.wind_speed}km/h (max: {profile.max_wind_speed}km/h)"
            ))

        if reading.precipitation > profile.max_precipitation:
            found.append(AlertCandidate(
                'precipitation', 'warning', 4,
                f"Precipitation too high: {reading.precipitation}mm (max: {profile.max_precipitation}mm)"
            ))

        if reading.uv_index is not None and reading.uv_index > profile.uv_index.max:
            found.append(AlertCandidate(
                'uv', 'warning', 3,
                f"UV index too high: {reading.uv_index} (max: {profile.uv_index.max})"
            ))

        if reading.soil_moisture is not None:
            if reading.soil_moisture < profile.soil_moisture.min:
                found.append(AlertCandidate(
                    'soil', 'warning', 3,
                    f"Soil too dry: {reading.soil_moisture}% (min: {profile.soil_moisture.min}%)"
                ))
            elif reading.soil_moisture > profile.soil_moisture.max:
                found.append(AlertCandidate(
                    'soil', 'warning', 3,
                    f"Soil too wet: {reading.soil_moisture}% (max: {profile.soil_moisture.max}%)"
                ))

        if reading.dew_point is not None and reading.dew_point > profile.dew_point.max:
            found.append(AlertCandidate(
                'dewpoint', 'warning', 3,
                f"High disease risk - dew point: {reading.dew_point}°C (max: {profile.dew_point.max}°C)"
            ))

        if reading.conditions not in profile.ideal_conditions:
            found.append(AlertCandidate(
                'conditions', 'warning', CONDITIONS_PRIORITY,
                f"Conditions not ideal for {profile.name}: {reading.conditions}"
            ))

        return found

    def generate(
        self,
        reading: WeatherReading,
        treatment_type: str,
        treatment_id: str,
        location: Location,
        scheduled_date: datetime,
    ) -> Optional[WeatherAlert]:
        """
        Build at most one alert for a reading

        Returns:
            The highest-priority alert, or None when every metric is within tolerance
        """
        name = resolve_treatment_type(treatment_type)
        profile = get_profile(name)

        found = self.candidates(reading, profile)
        if not found:
            return None

        chosen = found[0]
        for candidate in found[1:]:
            if candidate.priority > chosen.priority:
                chosen = candidate

        alert = WeatherAlert(
            id=self.id_factory(),
            treatment_id=treatment_id,
            treatment_type=name,
            kind=chosen.kind,
            severity=chosen.severity,
            priority=chosen.priority,
            message=chosen.message,
            created_at=self.clock(),
            location=location,
            original_date=scheduled_date,
            metrics=reading.to_dict(),
        )
        ALERTS_GENERATED_TOTAL.labels(kind=alert.kind, severity=alert.severity).inc()
        logger.debug(f"Alert {alert.kind}/{alert.priority} for treatment {treatment_id}: {alert.message}")
        return alert
