"""
Treatment Advisor - human-readable recommendations and feedback-weighted effectiveness
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..models import ForecastPoint, TreatmentEffectiveness, WeatherReading, WeatherRecommendation
from ..profiles import get_profile
from .suitability_scorer import SuitabilityScorer, limit_score, range_score, temperature_score

logger = logging.getLogger(__name__)

MAX_ALTERNATIVE_DATES = 3
RECOMMENDATION_THRESHOLD = 0.7


def _blend_with_rating(base_impact: float, rating: int) -> float:
    # rating 1-5 -> 0-1, averaged with the weather impact
    return (base_impact + (rating - 1) / 4) / 2


class TreatmentAdvisor:
    """Explain a weather score and suggest better timing"""

    def __init__(self, scorer: SuitabilityScorer):
        self.scorer = scorer

    def recommend(
        self,
        reading: WeatherReading,
        treatment_type: str,
        forecast: Optional[Sequence[ForecastPoint]] = None,
    ) -> WeatherRecommendation:
        """
        Build recommendations for treating under the given conditions

        Args:
            reading: Current (or planned) weather
            treatment_type: Treatment type name
            forecast: Forecast used to look for better alternative dates

        Returns:
            WeatherRecommendation with up to three better alternative dates
            when the current score is below 3
        """
        profile = get_profile(treatment_type)
        score = self.scorer.score(reading, treatment_type)
        effectiveness = self.analyze(treatment_type, reading, score)
        recommendations = list(effectiveness.recommendations)

        if score < 3:
            scored = []
            for point in forecast or []:
                try:
                    point_score = self.scorer.score(point.reading, treatment_type)
                except ValueError as e:
                    logger.warning(f"Skipping forecast point {point.date}: {e}")
                    continue
                if point_score > score:
                    scored.append((point_score, point.date))
            scored.sort(key=lambda item: (-item[0], item[1]))
            alternatives = [date for _, date in scored[:MAX_ALTERNATIVE_DATES]]

            if reading.temperature > profile.max_temp:
                recommendations.append('Consider early morning or evening application to avoid high temperatures')
            if reading.wind_speed > profile.max_wind_speed:
                recommendations.append('Early morning typically has lower wind speeds')
            if reading.uv_index is not None and reading.uv_index > profile.uv_index.max:
                recommendations.append('UV levels are high - consider treatment during lower UV hours')

            return WeatherRecommendation(score=score, recommendations=recommendations, alternative_dates=alternatives)

        if score >= 4:
            recommendations.append('Current conditions are optimal for treatment')
            if reading.soil_moisture is not None and profile.soil_moisture.contains(reading.soil_moisture):
                recommendations.append('Soil moisture levels are ideal for treatment effectiveness')

        return WeatherRecommendation(score=score, recommendations=recommendations)

    def analyze(self, treatment_type: str, reading: WeatherReading, rating: int) -> TreatmentEffectiveness:
        """
        Blend per-metric weather impact with a 1-5 effectiveness rating

        Raises:
            ValueError: rating outside 1-5
        """
        if not 1 <= rating <= 5:
            raise ValueError(f"Effectiveness rating must be between 1 and 5, got {rating}")
        profile = get_profile(treatment_type)

        impacts: Dict[str, float] = {
            # unlike the scorer, temperature impact keeps falling off past the bounds
            'temperature': max(0.0, 1 - abs(reading.temperature - profile.optimal_temp)
                               / ((profile.max_temp - profile.min_temp) / 2)),
            'wind': limit_score(reading.wind_speed, profile.max_wind_speed),
            'precipitation': limit_score(reading.precipitation, profile.max_precipitation),
        }
        if reading.uv_index is not None:
            impacts['uvIndex'] = range_score(reading.uv_index, profile.uv_index.min, profile.uv_index.max)
        if reading.soil_moisture is not None:
            impacts['soilMoisture'] = range_score(
                reading.soil_moisture, profile.soil_moisture.min, profile.soil_moisture.max
            )
        if reading.dew_point is not None:
            impacts['dewPoint'] = range_score(reading.dew_point, profile.dew_point.min, profile.dew_point.max)

        factors = {name: _blend_with_rating(value, rating) for name, value in impacts.items()}
        score = sum(factors.values()) / len(factors)

        return TreatmentEffectiveness(
            score=score,
            factors=factors,
            recommendations=self._factor_recommendations(factors, treatment_type),
        )

    def _factor_recommendations(self, factors: Dict[str, float], treatment_type: str) -> List[str]:
        profile = get_profile(treatment_type)
        recommendations: List[str] = []

        for name, impact in sorted(factors.items(), key=lambda item: item[1]):
            if impact >= RECOMMENDATION_THRESHOLD:
                continue
            if name == 'temperature':
                recommendations.append(
                    f"Consider adjusting treatment time to when temperature is closer to "
                    f"{round(profile.optimal_temp)}°C"
                )
            elif name == 'wind' and impact < 0.5:
                recommendations.append(
                    f"Avoid treatment during high winds (above {profile.max_wind_speed}km/h)"
                )
            elif name == 'precipitation' and impact < 0.6:
                recommendations.append(
                    f"Check forecast to avoid precipitation within {profile.max_precipitation}mm"
                )
            elif name == 'uvIndex':
                recommendations.append('Consider UV exposure levels when scheduling treatments')
            elif name == 'soilMoisture':
                recommendations.append('Monitor soil moisture levels for optimal treatment effectiveness')
            elif name == 'dewPoint' and impact < 0.6:
                recommendations.append('Watch for high disease risk conditions with current dew point levels')

        return recommendations
