"""
Reschedule Optimizer - rank forecast slots for a treatment by adjusted suitability
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from ..config import MonitorConfig
from ..errors import InvalidWeatherData, NoSuitableWindowFound
from ..models import ForecastPoint, Location, RescheduleOption
from ..processors.suitability_scorer import MAX_SCORE, MIN_SCORE, SuitabilityScorer
from ..profiles import resolve_treatment_type

if TYPE_CHECKING:
    from ..providers.base_provider import BaseWeatherProvider

logger = logging.getLogger(__name__)


def time_of_day_adjustment(hour: int) -> float:
    """Bias for the local hour: early morning preferred, midday avoided"""
    if 6 <= hour <= 9:
        return 0.5
    if 11 <= hour <= 15:
        return -0.3
    if 15 <= hour <= 18:
        return 0.2
    return 0.0


class RescheduleOptimizer:
    """Stateless queries over a forecast window"""

    def __init__(
        self,
        gateway: 'BaseWeatherProvider',
        scorer: Optional[SuitabilityScorer] = None,
        config: Optional[MonitorConfig] = None,
    ):
        self.gateway = gateway
        self.scorer = scorer or SuitabilityScorer()
        self.config = config or MonitorConfig()

    def update_config(self, config: MonitorConfig) -> None:
        self.config = config

    def rank(self, forecast: List[ForecastPoint], treatment_type: str, location: Location) -> List[RescheduleOption]:
        """
        Score, adjust, filter and sort forecast points

        Points that fail validation are skipped. The hour used for the
        time-of-day adjustment is the hour in the location's timezone.
        """
        tz = location.tzinfo()
        threshold = self.config.alert_threshold
        options: List[RescheduleOption] = []

        for point in forecast:
            try:
                base = self.scorer.score(point.reading, treatment_type)
            except InvalidWeatherData as e:
                logger.warning(f"Skipping invalid forecast point {point.date.isoformat()}: {e}")
                continue

            local = point.date.astimezone(tz) if point.date.tzinfo else point.date
            adjusted = min(MAX_SCORE, max(MIN_SCORE, base + time_of_day_adjustment(local.hour)))
            if adjusted < threshold:
                continue
            options.append(RescheduleOption(date=point.date, score=adjusted, conditions=point.reading))

        options.sort(key=lambda o: (-o.score, o.date))
        return options

    def find_options(
        self,
        treatment_id: str,
        treatment_type: str,
        location: Location,
        original_date: datetime,
        days_to_check: int = 7,
    ) -> List[RescheduleOption]:
        """
        Find reschedule candidates over the next days_to_check days

        Returns:
            Options with adjusted score >= alert_threshold, best first
            (earliest date first on equal scores)

        Raises:
            UnknownTreatmentType: no profile for treatment_type
            GatewayUnavailable: forecast could not be fetched
        """
        name = resolve_treatment_type(treatment_type)
        forecast = self.gateway.get_forecast(location, days_to_check)
        options = self.rank(forecast, name, location)
        logger.info(
            f"Found {len(options)} reschedule option(s) for treatment {treatment_id} "
            f"(originally {original_date.isoformat()})"
        )
        return options

    def find_optimal_treatment_time(
        self,
        location: Location,
        treatment_type: str,
        start_date: datetime,
        end_date: datetime,
    ) -> datetime:
        """
        Best treatment time between start_date and end_date (inclusive)

        Raises:
            NoSuitableWindowFound: no slot in the window reaches the alert threshold
        """
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        name = resolve_treatment_type(treatment_type)
        days = max(1, math.ceil((end_date - start_date).total_seconds() / 86400))

        forecast = self.gateway.get_forecast(location, days)
        in_window = [p for p in forecast if start_date <= p.date <= end_date]
        options = self.rank(in_window, name, location)
        if not options:
            raise NoSuitableWindowFound(
                f"No suitable {name} times found between {start_date.isoformat()} and {end_date.isoformat()}"
            )
        return options[0].date
