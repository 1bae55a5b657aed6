"""
Alert Batcher - accumulate alerts into time-boxed batches before dispatch.

Usage:
    batcher = AlertBatcher(dispatcher, scheduler, config)
    batcher.add(alert)       # opens a batch and arms the flush timer
    ...                      # flushes after batch_window minutes or at max_alerts_per_batch
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..config import MonitorConfig
from ..metrics import ALERT_BATCHES_FLUSHED_TOTAL, ALERT_DISPATCH_ERRORS_TOTAL, ALERTS_DROPPED_TOTAL
from ..models import AlertBatch, WeatherAlert, utcnow
from ..monitoring.scheduler import CancelToken, Scheduler
from .dispatch import AlertDispatcher

logger = logging.getLogger(__name__)


class AlertBatcher:
    """
    Holds at most one open batch.

    Alerts below min_alert_priority are dropped without opening a batch.
    A batch is closed exactly once, whichever of the timer, the size cap or
    an explicit flush gets there first. The timer and explicit flushes
    dispatch on their own thread; a size-capped batch is handed to a one-shot
    scheduler job so add() returns without waiting on the dispatcher.
    """

    def __init__(
        self,
        dispatcher: AlertDispatcher,
        scheduler: Scheduler,
        config: Optional[MonitorConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.dispatcher = dispatcher
        self.scheduler = scheduler
        self.config = config or MonitorConfig()
        self.clock = clock
        self._lock = threading.RLock()
        self._batch: Optional[AlertBatch] = None
        self._timer: Optional[CancelToken] = None
        # Closed batches waiting for their delivery job
        self._pending: Dict[str, AlertBatch] = OrderedDict()

    @property
    def open_batch(self) -> Optional[AlertBatch]:
        with self._lock:
            return self._batch

    @property
    def pending_batches(self) -> List[AlertBatch]:
        with self._lock:
            return list(self._pending.values())

    def update_config(self, config: MonitorConfig) -> None:
        with self._lock:
            self.config = config

    def add(self, alert: WeatherAlert) -> None:
        """Queue an alert for the next flush (fire-and-forget)"""
        full_batch: Optional[AlertBatch] = None

        with self._lock:
            if alert.priority < self.config.min_alert_priority:
                ALERTS_DROPPED_TOTAL.inc()
                logger.debug(
                    f"Dropping alert {alert.id} (priority {alert.priority} < {self.config.min_alert_priority})"
                )
                return

            if self._batch is None:
                self._batch = AlertBatch(id=str(uuid.uuid4()), created_at=self.clock())
                batch = self._batch
                self._timer = self.scheduler.schedule_once(
                    self.config.batch_window * 60,
                    lambda: self._flush_batch(batch, 'timer'),
                    name=f"alert-batch-{batch.id[:8]}",
                )
                logger.debug(f"Opened alert batch {batch.id}")

            self._batch.alerts.append(alert)
            if alert.treatment_id not in self._batch.treatment_ids:
                self._batch.treatment_ids.append(alert.treatment_id)

            if len(self._batch) >= self.config.max_alerts_per_batch:
                full_batch = self._close(self._batch)
                self._pending[full_batch.id] = full_batch

        if full_batch is not None:
            # add() never waits on delivery
            self.scheduler.schedule_once(
                0,
                lambda: self._deliver_pending(full_batch.id),
                name=f"alert-dispatch-{full_batch.id[:8]}",
            )

    def flush(self, trigger: str = 'manual') -> Optional[AlertBatch]:
        """
        Flush the open batch now, if any

        Size-capped batches still waiting for their delivery job are
        dispatched first, on the calling thread.

        Returns:
            The flushed open batch, or None when no batch was open
        """
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
            batch = self._close(self._batch) if self._batch is not None else None

        for closed in pending:
            self._dispatch(closed, 'size')
        if batch is not None:
            self._dispatch(batch, trigger)
        return batch

    def _flush_batch(self, batch: AlertBatch, trigger: str) -> Optional[AlertBatch]:
        with self._lock:
            closed = self._close(batch)
        if closed is None:
            return None
        self._dispatch(closed, trigger)
        return closed

    def _deliver_pending(self, batch_id: str) -> None:
        with self._lock:
            batch = self._pending.pop(batch_id, None)
        if batch is not None:
            self._dispatch(batch, 'size')

    def _close(self, batch: AlertBatch) -> Optional[AlertBatch]:
        """Detach batch if it is still the open one; caller holds the lock"""
        # Another trigger already closed this batch
        if self._batch is not batch or batch.processed_at is not None:
            return None
        self._batch = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        batch.alerts.sort(key=lambda a: a.priority, reverse=True)
        batch.processed_at = self.clock()
        return batch

    def _dispatch(self, batch: AlertBatch, trigger: str) -> None:
        groups: Dict[str, List[WeatherAlert]] = OrderedDict()
        for alert in batch.alerts:
            groups.setdefault(alert.treatment_id, []).append(alert)

        for treatment_id, alerts in groups.items():
            try:
                self.dispatcher.dispatch(treatment_id, alerts)
            except Exception as e:
                ALERT_DISPATCH_ERRORS_TOTAL.inc()
                logger.error(f"Error dispatching {len(alerts)} alert(s) for treatment {treatment_id}: {e}")

        ALERT_BATCHES_FLUSHED_TOTAL.labels(trigger=trigger).inc()
        logger.info(
            f"Flushed alert batch {batch.id} ({trigger}): {len(batch)} alert(s), "
            f"{len(groups)} treatment(s), priority {batch.priority}"
        )
