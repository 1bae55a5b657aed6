"""
Alert dispatch - hand flushed alert groups to the notification side
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..models import Location, WeatherAlert

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreatmentInfo:
    treatment_id: str
    user_id: str
    location: Optional[Location] = None


# Read-only lookup of a treatment's owner and lawn location
TreatmentLookup = Callable[[str], Optional[TreatmentInfo]]


class AlertDispatchError(Exception):
    pass


class AlertDispatcher(ABC):
    """Receives one call per treatment id when a batch flushes"""

    @abstractmethod
    def dispatch(self, treatment_id: str, alerts: List[WeatherAlert]) -> None:
        pass


class LoggingDispatcher(AlertDispatcher):
    """Dispatcher that only logs; used when no delivery channel is configured"""

    def dispatch(self, treatment_id: str, alerts: List[WeatherAlert]) -> None:
        for alert in alerts:
            logger.info(
                f"Weather alert [{alert.severity}/{alert.priority}] treatment={treatment_id} "
                f"type={alert.kind}: {alert.message}"
            )


class WebhookDispatcher(AlertDispatcher):
    """
    POST alert groups to a notification webhook.

    The treatment owner is resolved through the lookup so the receiver can
    route the notification; unknown treatments are skipped with a warning.
    """

    def __init__(
        self,
        url: str,
        lookup: TreatmentLookup,
        token: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.url = url
        self.lookup = lookup
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        if token:
            self.session.headers['Authorization'] = f"Bearer {token}"

    def build_payload(self, info: TreatmentInfo, alerts: List[WeatherAlert]) -> Dict[str, Any]:
        return {
            'userId': info.user_id,
            'treatmentId': info.treatment_id,
            'lawnLocation': info.location.to_dict() if info.location else None,
            'priority': max(a.priority for a in alerts),
            'alerts': [a.to_dict() for a in alerts],
        }

    def dispatch(self, treatment_id: str, alerts: List[WeatherAlert]) -> None:
        if not alerts:
            return
        info = self.lookup(treatment_id)
        if info is None:
            logger.warning(f"Treatment not found for alert dispatch: {treatment_id}")
            return
        self._post(self.build_payload(info, alerts))
        logger.info(f"Dispatched {len(alerts)} alert(s) for treatment {treatment_id} to {info.user_id}")

    @retry(
        retry=retry_if_exception_type(requests.RequestException),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        stop=stop_after_attempt(4),
        reraise=True,
    )
    def _post(self, payload: Dict[str, Any]) -> None:
        logger.debug("POST %s payload=%s", self.url, payload)
        response = self.session.post(self.url, json=payload, timeout=self.timeout)
        if response.status_code >= 400:
            raise AlertDispatchError(
                f"Webhook error {response.status_code}: {response.text}"
            )
