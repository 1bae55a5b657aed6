"""
Monitoring Session Manager - one cancellable recurring weather check per treatment
"""

from __future__ import annotations

import logging
import math
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Deque, Dict, List, Optional

from ..config import MonitorConfig
from ..errors import GatewayUnavailable
from ..metrics import MONITORING_ACTIVE_SESSIONS, MONITORING_TICKS_TOTAL
from ..models import Location, WeatherAlert, utcnow
from ..profiles import resolve_treatment_type
from .scheduler import CancelToken, Scheduler

if TYPE_CHECKING:
    from ..alerting.batcher import AlertBatcher
    from ..processors.alert_generator import AlertGenerator
    from ..providers.base_provider import BaseWeatherProvider

logger = logging.getLogger(__name__)

RECENT_ALERT_IDS = 50


@dataclass
class MonitoringSession:
    treatment_id: str
    treatment_type: str
    location: Location
    scheduled_date: datetime
    config: MonitorConfig
    started_at: datetime
    cancel_token: Optional[CancelToken] = None
    last_checked_at: Optional[datetime] = None
    check_count: int = 0
    error_count: int = 0
    alert_count: int = 0
    recent_alert_ids: Deque[str] = field(default_factory=lambda: deque(maxlen=RECENT_ALERT_IDS))


class MonitoringSessionManager:
    """
    Owns the session table (treatment id -> session).

    Starting a session for an id that is already monitored cancels the old
    session first. Failed checks are logged and counted; only
    stop_monitoring() or shutdown() end a session.
    """

    def __init__(
        self,
        gateway: 'BaseWeatherProvider',
        generator: 'AlertGenerator',
        batcher: 'AlertBatcher',
        scheduler: Scheduler,
        config: Optional[MonitorConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.gateway = gateway
        self.generator = generator
        self.batcher = batcher
        self.scheduler = scheduler
        self.config = config or MonitorConfig()
        self.clock = clock
        self._lock = threading.RLock()
        self._sessions: Dict[str, MonitoringSession] = {}

    def start_monitoring(
        self,
        treatment_id: str,
        treatment_type: str,
        location: Location,
        scheduled_date: datetime,
        check_interval: Optional[int] = None,
        forecast_hours: Optional[int] = None,
    ) -> MonitoringSession:
        """
        Start (or restart) monitoring a scheduled treatment

        Args:
            treatment_id: Treatment identifier (session key)
            treatment_type: Treatment type name
            location: Lawn location
            scheduled_date: When the treatment is scheduled
            check_interval: Minutes between checks (15-360), overrides the default
            forecast_hours: Look-ahead window (24-168), overrides the default

        Returns:
            The new active session
        """
        name = resolve_treatment_type(treatment_type)
        session_config = self.config.merged(
            check_interval=check_interval,
            forecast_hours=forecast_hours,
        )

        with self._lock:
            previous = self._sessions.pop(treatment_id, None)
            if previous is not None:
                self._cancel(previous)
                logger.info(f"Replacing monitoring session for treatment {treatment_id}")

            session = MonitoringSession(
                treatment_id=treatment_id,
                treatment_type=name,
                location=location,
                scheduled_date=scheduled_date,
                config=session_config,
                started_at=self.clock(),
            )
            self._sessions[treatment_id] = session
            session.cancel_token = self.scheduler.schedule(
                session_config.check_interval * 60,
                lambda: self._tick(session),
                name=f"monitor-{treatment_id}",
            )
            MONITORING_ACTIVE_SESSIONS.set(len(self._sessions))

        logger.info(
            f"Started monitoring treatment {treatment_id} ({name}) every "
            f"{session_config.check_interval}min, {session_config.forecast_hours}h ahead"
        )
        self._tick(session)
        return session

    def stop_monitoring(self, treatment_id: str) -> None:
        """Cancel and remove the session; no-op when none exists"""
        with self._lock:
            session = self._sessions.pop(treatment_id, None)
            if session is None:
                return
            self._cancel(session)
            MONITORING_ACTIVE_SESSIONS.set(len(self._sessions))
        logger.info(f"Stopped monitoring treatment {treatment_id}")

    def is_monitoring(self, treatment_id: str) -> bool:
        with self._lock:
            return treatment_id in self._sessions

    def get_session(self, treatment_id: str) -> Optional[MonitoringSession]:
        with self._lock:
            return self._sessions.get(treatment_id)

    def active_treatment_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def update_config(self, config: MonitorConfig) -> None:
        """New defaults apply to sessions started afterwards"""
        with self._lock:
            self.config = config

    def shutdown(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            for session in sessions:
                self._cancel(session)
            MONITORING_ACTIVE_SESSIONS.set(0)
        if sessions:
            logger.info(f"Stopped {len(sessions)} monitoring session(s)")

    def check_session(self, session: MonitoringSession) -> List[WeatherAlert]:
        """
        Run one weather check for a session

        Fetches the forecast and current conditions, generates an alert for
        each forecast point inside [now, now + forecast_hours] and for the
        current reading, and feeds them to the batcher. Nothing is queued when
        the session was stopped while the gateway was being queried.

        Raises:
            GatewayUnavailable: weather provider failure
        """
        now = self.clock()
        horizon = now + timedelta(hours=session.config.forecast_hours)
        days = max(1, math.ceil(session.config.forecast_hours / 24))

        forecast = self.gateway.get_forecast(session.location, days)
        current = self.gateway.get_current_weather(session.location)

        readings = [(point.reading, point.date) for point in forecast if now <= point.date <= horizon]
        readings.append((current, now))

        if not self._is_active(session):
            logger.debug(f"Session for treatment {session.treatment_id} stopped during check")
            return []

        alerts: List[WeatherAlert] = []
        for reading, date in readings:
            alert = self.generator.generate(
                reading,
                session.treatment_type,
                session.treatment_id,
                session.location,
                date,
            )
            if alert is not None:
                alerts.append(alert)
                self.batcher.add(alert)
        return alerts

    def _is_active(self, session: MonitoringSession) -> bool:
        with self._lock:
            return self._sessions.get(session.treatment_id) is session

    def _tick(self, session: MonitoringSession) -> None:
        if not self._is_active(session):
            return

        try:
            alerts = self.check_session(session)
        except GatewayUnavailable as e:
            session.error_count += 1
            MONITORING_TICKS_TOTAL.labels(status='gateway_error').inc()
            logger.error(f"Error monitoring treatment {session.treatment_id}: {e}")
            return
        except Exception as e:
            session.error_count += 1
            MONITORING_TICKS_TOTAL.labels(status='error').inc()
            logger.exception(f"Unexpected error monitoring treatment {session.treatment_id}: {e}")
            return

        session.check_count += 1
        session.last_checked_at = self.clock()
        session.alert_count += len(alerts)
        session.recent_alert_ids.extend(a.id for a in alerts)
        MONITORING_TICKS_TOTAL.labels(status='success').inc()
        logger.debug(f"Checked treatment {session.treatment_id}: {len(alerts)} alert(s)")

    @staticmethod
    def _cancel(session: MonitoringSession) -> None:
        if session.cancel_token is not None:
            session.cancel_token.cancel()
