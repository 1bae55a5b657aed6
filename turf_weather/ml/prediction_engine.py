"""
Effectiveness Prediction Engine

Explainable heuristic estimate of treatment success from weather conditions:
  - base score: weighted mean of normalized weather features
  - confidence: data completeness and extremity, floored at the configured threshold
  - impact factors: per-treatment rule tables, extreme conditions first
  - historical score: similarity-weighted mean of past outcomes for the treatment type

Model metrics are recomputed from the sample store on a schedule and after
every new sample.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config import MLConfig
from ..errors import InvalidWeatherData, TrainingStoreError
from ..metrics import MODEL_RETRAINS_TOTAL, PREDICTIONS_TOTAL
from ..models import ModelMetrics, PredictionResult, TrainingSample, is_number, utcnow
from ..profiles import resolve_treatment_type
from ..storage.sample_store import TrainingSampleStore
from .impact_rules import analyze_factors
from .sanitizer import (
    WeatherInput,
    as_weather_dict,
    data_quality,
    has_extreme_values,
    initial_confidence,
    normalize_feature,
    present_features,
    sanitize,
)

logger = logging.getLogger(__name__)

# Feature weights for weather similarity between two readings
SIMILARITY_WEIGHTS: Dict[str, float] = {
    'temperature': 0.3,
    'humidity': 0.2,
    'windSpeed': 0.2,
    'precipitation': 0.15,
    'uvIndex': 0.15,
}

FALLBACK_SCORE = 0.5
BASE_CONFIDENCE = 0.8
EXTREME_CONFIDENCE_FACTOR = 0.8
DEGRADED_CONFIDENCE_FACTOR = 0.8


def similarity(a: Mapping[str, Any], b: Mapping[str, Any]) -> float:
    """Weighted closeness of two sanitized readings in [0, 1]"""
    total = 0.0
    for feature, weight in SIMILARITY_WEIGHTS.items():
        va, vb = a.get(feature), b.get(feature)
        if not (is_number(va) and is_number(vb)):
            continue
        total += max(0.0, 1 - abs(va - vb) / 10) * weight
    return total


def prediction_recommendations(data: Mapping[str, Any], score: float) -> List[str]:
    recommendations = []
    if score < 0.4:
        recommendations.append('Consider rescheduling due to unfavorable conditions')
    elif score < 0.7:
        recommendations.append('Conditions are acceptable but not optimal')
    else:
        recommendations.append('Current conditions are favorable for treatment')

    if data['windSpeed'] > 15:
        recommendations.append('High wind speeds may affect treatment effectiveness')
    if data['precipitation'] > 0:
        recommendations.append('Precipitation may interfere with treatment')
    if data['temperature'] < 10 or data['temperature'] > 30:
        recommendations.append('Temperature is outside optimal range')
    return recommendations


class EffectivenessPredictionEngine:
    """
    Stores feedback samples and predicts treatment effectiveness.

    The current ModelMetrics snapshot is immutable and swapped as a whole on
    retrain, so readers never see a partial update.
    """

    def __init__(
        self,
        store: TrainingSampleStore,
        config: Optional[MLConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.config = config or MLConfig()
        self.clock = clock
        self._train_lock = threading.Lock()
        self._metrics: Optional[ModelMetrics] = None
        self._last_trained_at: Optional[datetime] = None

    def add_sample(
        self,
        weather_conditions: WeatherInput,
        treatment_type: str,
        effectiveness: int,
    ) -> TrainingSample:
        """
        Record treatment feedback and retrain

        Args:
            weather_conditions: Reading at treatment time
            treatment_type: Treatment type name
            effectiveness: Rating 1-5

        Raises:
            UnknownTreatmentType: no profile for treatment_type
            InvalidWeatherData: required weather fields missing or not numeric
            ValueError: rating outside 1-5
            TrainingStoreError: store write or read failed
        """
        name = resolve_treatment_type(treatment_type)
        if isinstance(effectiveness, bool) or not isinstance(effectiveness, int) or not 1 <= effectiveness <= 5:
            raise ValueError(f"Effectiveness rating must be an integer 1-5, got {effectiveness!r}")

        clean = sanitize(weather_conditions)
        quality = data_quality(weather_conditions, self.config.feature_weights)
        sample = TrainingSample(
            weather_conditions=clean,
            treatment_type=name,
            effectiveness=effectiveness,
            timestamp=self.clock(),
            data_quality=quality,
            confidence=initial_confidence(quality),
        )

        self.store.create(sample)
        logger.info(f"Stored {name} training sample (rating={effectiveness}, quality={quality:.2f})")
        self.retrain()
        return sample

    def predict(self, weather_conditions: WeatherInput, treatment_type: str) -> PredictionResult:
        """
        Predict effectiveness for a treatment under the given weather

        Never fails on bad weather data or store errors; those produce a
        conservative result at reduced confidence.

        Raises:
            UnknownTreatmentType: no profile for treatment_type
        """
        name = resolve_treatment_type(treatment_type)
        threshold = self.config.confidence_threshold

        try:
            clean = sanitize(weather_conditions)
        except InvalidWeatherData as e:
            logger.warning(f"Invalid weather data for {name} prediction, using fallback: {e}")
            PREDICTIONS_TOTAL.labels(status='fallback').inc()
            return PredictionResult(score=FALLBACK_SCORE, confidence=threshold, factors=[])

        degraded = False
        if self._metrics is None or self._should_retrain():
            try:
                self.retrain()
            except TrainingStoreError as e:
                degraded = True
                logger.error(f"Retrain before prediction failed: {e}")

        score = self.base_score(clean)

        completeness = present_features(as_weather_dict(weather_conditions), self.config.feature_weights)
        confidence = BASE_CONFIDENCE * completeness / max(1, len(self.config.feature_weights))
        if has_extreme_values(clean):
            confidence *= EXTREME_CONFIDENCE_FACTOR

        try:
            historical = self.historical_score(clean, name)
        except TrainingStoreError as e:
            degraded = True
            historical = None
            logger.error(f"Historical lookup for {name} failed: {e}")

        if degraded:
            confidence *= DEGRADED_CONFIDENCE_FACTOR
        confidence = max(confidence, threshold)

        factors = analyze_factors(clean, name, self.config.feature_weights, threshold)
        recommendations = prediction_recommendations(
            clean, historical if historical is not None else score
        )

        PREDICTIONS_TOTAL.labels(status='degraded' if degraded else 'success').inc()
        return PredictionResult(
            score=score,
            confidence=confidence,
            factors=factors,
            recommendations=recommendations,
            historical_score=historical,
        )

    def get_metrics(self) -> Optional[ModelMetrics]:
        return self._metrics

    def update_config(self, config: MLConfig) -> None:
        self.config = config

    def base_score(self, clean: Mapping[str, Any]) -> float:
        """Weighted mean of normalized features present, in [0, 1]"""
        score = 0.0
        total_weight = 0.0
        for feature, weight in self.config.feature_weights.items():
            value = clean.get(feature)
            if is_number(value):
                score += normalize_feature(feature, value) * weight
                total_weight += weight
        if total_weight <= 0:
            return FALLBACK_SCORE
        return max(0.0, min(1.0, score / total_weight))

    def historical_score(self, clean: Mapping[str, Any], treatment_type: str) -> Optional[float]:
        """
        Similarity-weighted mean outcome of past samples of the same type

        Returns:
            Normalized effectiveness in [0, 1], or None without usable samples
        """
        samples = self.store.find_many(
            min_quality=self.config.min_sample_quality,
            limit=self.config.max_training_samples,
            treatment_type=treatment_type,
        )
        weighted_sum = 0.0
        total_weight = 0.0
        for sample in samples:
            weight = similarity(clean, sample.weather_conditions) ** 2
            weighted_sum += sample.normalized_effectiveness * weight
            total_weight += weight
        if total_weight <= 0:
            return None
        return weighted_sum / total_weight

    def retrain(self) -> Optional[ModelMetrics]:
        """
        Recompute model metrics from the most recent quality-filtered samples

        Metrics stay unset while fewer than min_data_points samples qualify.

        Raises:
            TrainingStoreError: store read failed
        """
        with self._train_lock:
            try:
                samples = self.store.find_many(
                    min_quality=self.config.min_sample_quality,
                    limit=self.config.max_training_samples,
                )
            except TrainingStoreError:
                MODEL_RETRAINS_TOTAL.labels(outcome='error').inc()
                raise

            if len(samples) < self.config.min_data_points:
                MODEL_RETRAINS_TOTAL.labels(outcome='insufficient_data').inc()
                logger.warning(
                    f"Insufficient training data: {len(samples)} points "
                    f"(need {self.config.min_data_points})"
                )
                return None

            metrics = self.evaluate(samples)
            self._metrics = metrics
            self._last_trained_at = metrics.last_updated
            MODEL_RETRAINS_TOTAL.labels(outcome='success').inc()
            logger.info(
                f"Model retrained on {metrics.data_points} samples: accuracy={metrics.accuracy:.3f} "
                f"precision={metrics.precision:.3f} recall={metrics.recall:.3f} f1={metrics.f1_score:.3f}"
            )
            return metrics

    def evaluate(self, samples: List[TrainingSample]) -> ModelMetrics:
        """Confusion-matrix metrics of the base score against recorded outcomes"""
        threshold = self.config.good_outcome_threshold
        tp = fp = tn = fn = 0
        for sample in samples:
            predicted = self.base_score(sanitize(sample.weather_conditions)) >= threshold
            actual = sample.normalized_effectiveness >= threshold
            if predicted and actual:
                tp += 1
            elif predicted:
                fp += 1
            elif actual:
                fn += 1
            else:
                tn += 1

        total = len(samples)
        precision = tp / (tp + fp) if tp + fp else 0.0
        recall = tp / (tp + fn) if tp + fn else 0.0
        f1 = 2 * precision * recall / (precision + recall) if precision + recall else 0.0
        return ModelMetrics(
            accuracy=(tp + tn) / total if total else 0.0,
            precision=precision,
            recall=recall,
            f1_score=f1,
            data_points=total,
            last_updated=self.clock(),
        )

    def _should_retrain(self) -> bool:
        if self._last_trained_at is None:
            return True
        interval = timedelta(hours=self.config.training_interval_hours)
        return self.clock() - self._last_trained_at >= interval
