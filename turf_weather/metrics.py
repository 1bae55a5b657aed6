"""
Prometheus metrics for the treatment weather engine
"""

from prometheus_client import Counter, Gauge, Histogram

ALERTS_GENERATED_TOTAL = Counter(
    'turf_weather_alerts_generated_total',
    'Total weather alerts generated',
    ['kind', 'severity']
)

ALERTS_DROPPED_TOTAL = Counter(
    'turf_weather_alerts_dropped_total',
    'Alerts dropped below the minimum batch priority'
)

ALERT_BATCHES_FLUSHED_TOTAL = Counter(
    'turf_weather_alert_batches_flushed_total',
    'Alert batches flushed to dispatch',
    ['trigger']
)

ALERT_DISPATCH_ERRORS_TOTAL = Counter(
    'turf_weather_alert_dispatch_errors_total',
    'Alert groups that failed to dispatch'
)

MONITORING_TICKS_TOTAL = Counter(
    'turf_weather_monitoring_ticks_total',
    'Monitoring checks executed',
    ['status']
)

MONITORING_ACTIVE_SESSIONS = Gauge(
    'turf_weather_monitoring_active_sessions',
    'Treatments currently under weather monitoring'
)

GATEWAY_REQUEST_DURATION = Histogram(
    'turf_weather_gateway_request_duration_seconds',
    'Duration of weather provider requests',
    ['operation']
)

PREDICTIONS_TOTAL = Counter(
    'turf_weather_predictions_total',
    'Effectiveness predictions served',
    ['status']
)

MODEL_RETRAINS_TOTAL = Counter(
    'turf_weather_model_retrains_total',
    'Effectiveness model retrain attempts',
    ['outcome']
)
