"""
Suitability Scorer - rate weather from 1 (unsuitable) to 5 (ideal) per treatment type
"""

import logging
import math
from typing import Dict, Optional

from ..models import WeatherReading
from ..profiles import TreatmentToleranceProfile, get_profile

logger = logging.getLogger(__name__)

# Weight of each sub-score in the weighted average
METRIC_WEIGHTS: Dict[str, float] = {
    'temperature': 0.25,
    'wind': 0.20,
    'precipitation': 0.20,
    'uvIndex': 0.10,
    'soilMoisture': 0.15,
    'dewPoint': 0.10,
}

MIN_SCORE = 1
MAX_SCORE = 5


def temperature_score(temp: float, min_temp: float, max_temp: float) -> float:
    """Triangular score: 1 at the midpoint, 0 at or beyond either bound"""
    if temp < min_temp or temp > max_temp:
        return 0.0
    half_range = (max_temp - min_temp) / 2
    if half_range <= 0:
        return 1.0
    distance = abs(temp - (min_temp + max_temp) / 2) / half_range
    return max(0.0, 1.0 - distance)


def limit_score(value: float, maximum: float) -> float:
    """Linear score from 1 at zero down to 0 at the maximum"""
    if maximum <= 0:
        return 1.0 if value <= 0 else 0.0
    return max(0.0, 1.0 - value / maximum)


def range_score(value: float, minimum: float, maximum: float) -> float:
    """1 inside [minimum, maximum], linear falloff proportional to the overshoot"""
    if value < minimum:
        if minimum == 0:
            return 0.0
        return max(0.0, 1.0 - (minimum - value) / abs(minimum))
    if value > maximum:
        if maximum == 0:
            return 0.0
        return max(0.0, 1.0 - (value - maximum) / abs(maximum))
    return 1.0


def to_band(weighted: float) -> int:
    """Map a [0, 1] weighted average to the integer 1-5 band"""
    # half-up rounding
    return max(MIN_SCORE, min(MAX_SCORE, int(math.floor(weighted * 4 + 0.5)) + 1))


class SuitabilityScorer:
    """
    Score weather readings against treatment tolerance profiles.

    Absent optional metrics (uv index, soil moisture, dew point) are left out
    and the weighted average is renormalized over the metrics present.
    """

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = dict(weights or METRIC_WEIGHTS)

    def sub_scores(self, reading: WeatherReading, profile: TreatmentToleranceProfile) -> Dict[str, float]:
        scores = {
            'temperature': temperature_score(reading.temperature, profile.min_temp, profile.max_temp),
            'wind': limit_score(reading.wind_speed, profile.max_wind_speed),
            'precipitation': limit_score(reading.precipitation, profile.max_precipitation),
        }
        if reading.uv_index is not None:
            scores['uvIndex'] = range_score(reading.uv_index, profile.uv_index.min, profile.uv_index.max)
        if reading.soil_moisture is not None:
            scores['soilMoisture'] = range_score(
                reading.soil_moisture, profile.soil_moisture.min, profile.soil_moisture.max
            )
        if reading.dew_point is not None:
            scores['dewPoint'] = range_score(reading.dew_point, profile.dew_point.min, profile.dew_point.max)
        return scores

    def weighted_average(self, scores: Dict[str, float]) -> float:
        total_weight = sum(self.weights[m] for m in scores)
        if total_weight <= 0:
            return 0.0
        weighted = sum(score * self.weights[m] for m, score in scores.items())
        return max(0.0, min(1.0, weighted / total_weight))

    def score(self, reading: WeatherReading, treatment_type: str) -> int:
        """
        Rate weather suitability for a treatment type

        Args:
            reading: Weather reading (validated, never clamped)
            treatment_type: Treatment type name

        Returns:
            Integer score in [1, 5]

        Raises:
            UnknownTreatmentType: no profile for treatment_type
            InvalidWeatherData: reading out of physical bounds
        """
        profile = get_profile(treatment_type)
        reading.validate()
        scores = self.sub_scores(reading, profile)
        return to_band(self.weighted_average(scores))

    def score_basic(self, reading: WeatherReading, treatment_type: str) -> int:
        """
        Reference-table variant for readings with only the basic fields.

        Uses temperature, wind and precipitation only and applies a flat -1
        when the reported conditions are not ideal for the treatment.
        """
        profile = get_profile(treatment_type)
        reading.validate()
        scores = {
            'temperature': temperature_score(reading.temperature, profile.min_temp, profile.max_temp),
            'wind': limit_score(reading.wind_speed, profile.max_wind_speed),
            'precipitation': limit_score(reading.precipitation, profile.max_precipitation),
        }
        band = to_band(self.weighted_average(scores))
        if reading.conditions not in profile.ideal_conditions:
            band -= 1
        return max(MIN_SCORE, min(MAX_SCORE, band))
