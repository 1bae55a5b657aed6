"""
Treatment Weather Service - the engine's in-process entry point.

Wires the scorer, alert generator, batcher, monitoring sessions, reschedule
optimizer and prediction engine together. Build one per process with
create_service() and pass it to the API layer.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence

from .alerting import AlertBatcher, AlertDispatcher, LoggingDispatcher
from .config import MLConfig, MonitorConfig, Settings, get_settings
from .errors import GatewayUnavailable
from .ml import EffectivenessPredictionEngine
from .ml.sanitizer import WeatherInput
from .models import (
    ForecastPoint,
    Location,
    ModelMetrics,
    PredictionResult,
    RescheduleOption,
    TrainingSample,
    TreatmentEffectiveness,
    WeatherAlert,
    WeatherReading,
    WeatherRecommendation,
    utcnow,
)
from .monitoring import MonitoringSession, MonitoringSessionManager, Scheduler, ThreadScheduler
from .planner import RescheduleOptimizer
from .processors import AlertGenerator, SuitabilityScorer, TreatmentAdvisor
from .providers import BaseWeatherProvider, OpenMeteoProvider
from .storage import InMemorySampleStore, PostgresSampleStore, TrainingSampleStore

logger = logging.getLogger(__name__)


class TreatmentWeatherService:
    """Facade over the weather decision engine"""

    def __init__(
        self,
        gateway: BaseWeatherProvider,
        dispatcher: AlertDispatcher,
        store: TrainingSampleStore,
        scheduler: Scheduler,
        config: Optional[MonitorConfig] = None,
        ml_config: Optional[MLConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.gateway = gateway
        self.store = store
        self.scheduler = scheduler
        self.clock = clock
        self._default_config = config or MonitorConfig()
        self.config = self._default_config

        self.scorer = SuitabilityScorer()
        self.generator = AlertGenerator(clock=clock)
        self.advisor = TreatmentAdvisor(self.scorer)
        self.batcher = AlertBatcher(dispatcher, scheduler, self.config, clock=clock)
        self.monitor = MonitoringSessionManager(
            gateway, self.generator, self.batcher, scheduler, self.config, clock=clock
        )
        self.optimizer = RescheduleOptimizer(gateway, self.scorer, self.config)
        self.predictor = EffectivenessPredictionEngine(store, ml_config, clock=clock)

    # Scoring and alerts

    def score_weather(self, reading: WeatherReading, treatment_type: str, basic: bool = False) -> int:
        """
        Suitability score 1-5

        Raises:
            UnknownTreatmentType: no profile for treatment_type
            InvalidWeatherData: reading out of physical bounds
        """
        if basic:
            return self.scorer.score_basic(reading, treatment_type)
        return self.scorer.score(reading, treatment_type)

    def generate_alert(
        self,
        treatment_id: str,
        reading: WeatherReading,
        location: Location,
        scheduled_date: datetime,
        treatment_type: str,
        enqueue: bool = True,
    ) -> Optional[WeatherAlert]:
        """Generate at most one alert and, by default, queue it for batched dispatch"""
        alert = self.generator.generate(reading, treatment_type, treatment_id, location, scheduled_date)
        if alert is not None and enqueue:
            self.batcher.add(alert)
        return alert

    # Monitoring

    def start_monitoring(
        self,
        treatment_id: str,
        treatment_type: str,
        location: Location,
        scheduled_date: datetime,
        check_interval: Optional[int] = None,
        forecast_hours: Optional[int] = None,
    ) -> MonitoringSession:
        return self.monitor.start_monitoring(
            treatment_id,
            treatment_type,
            location,
            scheduled_date,
            check_interval=check_interval,
            forecast_hours=forecast_hours,
        )

    def stop_monitoring(self, treatment_id: str) -> None:
        self.monitor.stop_monitoring(treatment_id)

    def is_monitoring(self, treatment_id: str) -> bool:
        return self.monitor.is_monitoring(treatment_id)

    # Rescheduling

    def find_reschedule_options(
        self,
        treatment_id: str,
        treatment_type: str,
        location: Location,
        original_date: datetime,
        days_to_check: int = 7,
    ) -> List[RescheduleOption]:
        return self.optimizer.find_options(treatment_id, treatment_type, location, original_date, days_to_check)

    def find_optimal_treatment_time(
        self,
        location: Location,
        treatment_type: str,
        start_date: datetime,
        end_date: datetime,
    ) -> datetime:
        return self.optimizer.find_optimal_treatment_time(location, treatment_type, start_date, end_date)

    # Effectiveness prediction

    def add_training_sample(
        self,
        weather_conditions: WeatherInput,
        treatment_type: str,
        effectiveness: int,
    ) -> TrainingSample:
        return self.predictor.add_sample(weather_conditions, treatment_type, effectiveness)

    def predict_effectiveness(self, weather_conditions: WeatherInput, treatment_type: str) -> PredictionResult:
        return self.predictor.predict(weather_conditions, treatment_type)

    def get_model_metrics(self) -> Optional[ModelMetrics]:
        return self.predictor.get_metrics()

    # Weather queries and recommendations

    def get_current_weather(self, location: Location) -> WeatherReading:
        return self.gateway.get_current_weather(location)

    def get_forecast(self, location: Location, days: int = 7) -> List[ForecastPoint]:
        return self.gateway.get_forecast(location, days)

    def check_conditions(self, location: Location, date: datetime) -> WeatherReading:
        """
        Weather expected at a date

        Current conditions for past or present dates, otherwise the forecast
        point closest to date.

        Raises:
            GatewayUnavailable: provider failure or empty forecast
        """
        now = self.clock()
        if date <= now:
            return self.gateway.get_current_weather(location)

        days = max(1, math.ceil((date - now).total_seconds() / 86400))
        forecast = self.gateway.get_forecast(location, days)
        if not forecast:
            raise GatewayUnavailable(f"Empty forecast for {location.latitude},{location.longitude}")
        closest = min(forecast, key=lambda p: abs((p.date - date).total_seconds()))
        return closest.reading

    def get_treatment_recommendations(
        self,
        reading: WeatherReading,
        treatment_type: str,
        location: Optional[Location] = None,
        forecast: Optional[Sequence[ForecastPoint]] = None,
    ) -> WeatherRecommendation:
        """
        Recommendations for treating under the given conditions

        When the score is poor and a location is given, the 7-day forecast is
        searched for better alternative dates.
        """
        if forecast is None and location is not None and self.scorer.score(reading, treatment_type) < 3:
            forecast = self.gateway.get_forecast(location, 7)
        return self.advisor.recommend(reading, treatment_type, forecast)

    def analyze_treatment_effectiveness(
        self,
        treatment_type: str,
        reading: WeatherReading,
        rating: int,
    ) -> TreatmentEffectiveness:
        return self.advisor.analyze(treatment_type, reading, rating)

    # Configuration

    def get_config(self) -> MonitorConfig:
        return self.config

    def update_config(self, **changes: Any) -> MonitorConfig:
        """
        Apply validated config changes

        Affects the batcher limits and reschedule threshold immediately and
        monitoring sessions started afterwards.

        Raises:
            pydantic.ValidationError: a value is outside its bounds
        """
        self._apply_config(self.config.merged(**changes))
        logger.info(f"Monitor config updated: {changes}")
        return self.config

    def reset_config(self) -> MonitorConfig:
        self._apply_config(self._default_config)
        return self.config

    def _apply_config(self, config: MonitorConfig) -> None:
        self.config = config
        self.batcher.update_config(config)
        self.monitor.update_config(config)
        self.optimizer.update_config(config)

    def shutdown(self) -> None:
        """Stop all sessions, flush the open alert batch, stop scheduled jobs and release the store"""
        self.monitor.shutdown()
        self.batcher.flush(trigger='shutdown')
        self.scheduler.shutdown()
        self.store.close()
        logger.info("Treatment weather service stopped")


def create_service(
    settings: Optional[Settings] = None,
    gateway: Optional[BaseWeatherProvider] = None,
    dispatcher: Optional[AlertDispatcher] = None,
    store: Optional[TrainingSampleStore] = None,
    scheduler: Optional[Scheduler] = None,
) -> TreatmentWeatherService:
    """
    Build a service from settings, filling in any collaborator not supplied

    Defaults: Open-Meteo gateway, log-only dispatch, PostgreSQL store when
    postgres_url is set (in-memory otherwise), thread scheduler.
    """
    settings = settings or get_settings()

    if gateway is None:
        gateway = OpenMeteoProvider(settings.openmeteo_api_url, settings.request_timeout)

    if store is None:
        if settings.postgres_url:
            pg_store = PostgresSampleStore(settings.postgres_url)
            pg_store.ensure_schema()
            store = pg_store
        else:
            logger.warning("TURF_POSTGRES_URL not set, training samples are kept in memory")
            store = InMemorySampleStore()

    return TreatmentWeatherService(
        gateway=gateway,
        dispatcher=dispatcher or LoggingDispatcher(),
        store=store,
        scheduler=scheduler or ThreadScheduler(),
        config=settings.monitor_config(),
        ml_config=settings.ml_config(),
    )
