#!/usr/bin/env python3
# =============================================================================
# Turf Weather Worker - monitors scheduled lawn treatments
# =============================================================================

import argparse
import json
import logging
import signal
import sys
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from prometheus_client import start_http_server

from turf_weather.alerting import AlertDispatcher, LoggingDispatcher, TreatmentInfo, WebhookDispatcher
from turf_weather.config import Settings, get_settings
from turf_weather.errors import TurfWeatherError
from turf_weather.models import Location
from turf_weather.service import TreatmentWeatherService, create_service

logger = logging.getLogger(__name__)


class ScheduledTreatment:
    """A treatment entry from the treatments file"""

    def __init__(self, data: Dict[str, Any]):
        location = data['location']
        self.treatment_id = str(data['id'])
        self.treatment_type = data['type']
        self.user_id = str(data.get('userId', ''))
        self.scheduled_date = datetime.fromisoformat(data['scheduledDate'])
        self.location = Location(
            latitude=float(location['latitude']),
            longitude=float(location['longitude']),
            timezone=location.get('timezone', 'UTC'),
        )
        self.check_interval = data.get('checkInterval')
        self.forecast_hours = data.get('forecastHours')

    def info(self) -> TreatmentInfo:
        return TreatmentInfo(treatment_id=self.treatment_id, user_id=self.user_id, location=self.location)


def load_treatments(path: str) -> List[ScheduledTreatment]:
    """
    Load scheduled treatments from a JSON file

    Args:
        path: File holding a list of treatments

    Returns:
        Parsed treatments; malformed entries are skipped with an error log
    """
    with open(path, encoding='utf-8') as f:
        entries = json.load(f)

    treatments = []
    for entry in entries:
        try:
            treatments.append(ScheduledTreatment(entry))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Skipping malformed treatment entry {entry!r}: {e}")
    return treatments


def build_dispatcher(settings: Settings, treatments: List[ScheduledTreatment]) -> AlertDispatcher:
    if not settings.alert_webhook_url:
        logger.warning("TURF_ALERT_WEBHOOK_URL not set - alerts will only be logged")
        return LoggingDispatcher()

    by_id = {t.treatment_id: t.info() for t in treatments}

    def lookup(treatment_id: str) -> Optional[TreatmentInfo]:
        return by_id.get(treatment_id)

    return WebhookDispatcher(
        settings.alert_webhook_url,
        lookup,
        token=settings.alert_webhook_token,
        timeout=settings.request_timeout,
    )


def start_all(service: TreatmentWeatherService, treatments: List[ScheduledTreatment]) -> int:
    started = 0
    for treatment in treatments:
        try:
            service.start_monitoring(
                treatment.treatment_id,
                treatment.treatment_type,
                treatment.location,
                treatment.scheduled_date,
                check_interval=treatment.check_interval,
                forecast_hours=treatment.forecast_hours,
            )
            started += 1
        except (TurfWeatherError, ValueError) as e:
            logger.error(f"Could not start monitoring treatment {treatment.treatment_id}: {e}")
    return started


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Monitor scheduled lawn treatments for weather risks")
    parser.add_argument('--treatments', required=True, help="JSON file with scheduled treatments")
    parser.add_argument('--no-metrics', action='store_true', help="Do not start the Prometheus server")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    args = parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not args.no_metrics:
        try:
            start_http_server(settings.metrics_port, settings.metrics_host)
            logger.info(f"Prometheus metrics server started on {settings.metrics_host}:{settings.metrics_port}")
        except OSError as e:
            logger.warning(f"Failed to start metrics server: {e}")

    treatments = load_treatments(args.treatments)
    service = create_service(settings, dispatcher=build_dispatcher(settings, treatments))

    stop_event = threading.Event()

    # Handle graceful shutdown
    def signal_handler(sig, frame):
        logger.info("Received shutdown signal")
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    started = start_all(service, treatments)
    logger.info(f"Turf Weather Worker monitoring {started}/{len(treatments)} treatment(s)")

    try:
        stop_event.wait()
    finally:
        service.shutdown()
    return 0


if __name__ == '__main__':
    sys.exit(main())
