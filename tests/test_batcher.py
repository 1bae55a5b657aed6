"""
Tests for turf_weather.alerting.batcher
"""

import threading
import time

import pytest

from conftest import FakeScheduler, RecordingDispatcher, make_alert
from turf_weather.alerting import AlertBatcher
from turf_weather.config import MonitorConfig
from turf_weather.monitoring import ThreadScheduler


@pytest.fixture
def batcher(dispatcher, scheduler, clock):
    return AlertBatcher(dispatcher, scheduler, MonitorConfig(max_alerts_per_batch=3, batch_window=15), clock=clock)


# =========================================================================
# 1. Opening batches
# =========================================================================
class TestOpenBatch:

    def test_first_alert_opens_batch_and_arms_timer(self, batcher, scheduler):
        batcher.add(make_alert())
        assert batcher.open_batch is not None
        timers = scheduler.active_jobs(recurring=False)
        assert len(timers) == 1
        assert timers[0].interval == 15 * 60

    def test_later_alerts_join_open_batch(self, batcher, scheduler):
        batcher.add(make_alert('t-1'))
        batcher.add(make_alert('t-2'))
        assert len(batcher.open_batch) == 2
        assert batcher.open_batch.treatment_ids == ['t-1', 't-2']
        assert len(scheduler.active_jobs(recurring=False)) == 1

    def test_low_priority_alert_dropped_without_batch(self, batcher, scheduler, dispatcher):
        batcher.add(make_alert(priority=1, kind='conditions'))
        assert batcher.open_batch is None
        assert scheduler.active_jobs() == []
        scheduler.advance(3600)
        assert dispatcher.calls == []


# =========================================================================
# 2. Flushing
# =========================================================================
class TestFlush:

    def test_timer_flush_groups_by_treatment(self, batcher, scheduler, dispatcher):
        batcher.add(make_alert('t-1', priority=3))
        batcher.add(make_alert('t-2', priority=4))
        scheduler.advance(15 * 60)

        assert batcher.open_batch is None
        assert [tid for tid, _ in dispatcher.calls] == ['t-2', 't-1']

    def test_alerts_sorted_by_priority_descending(self, batcher, scheduler, dispatcher):
        batcher.add(make_alert('t-1', priority=2))
        batcher.add(make_alert('t-1', priority=5, kind='temperature'))
        scheduler.advance(15 * 60)

        (treatment_id, alerts), = dispatcher.calls
        assert treatment_id == 't-1'
        assert [a.priority for a in alerts] == [5, 2]

    def test_size_cap_closes_batch_immediately(self, batcher, scheduler, dispatcher):
        for _ in range(3):
            batcher.add(make_alert('t-1'))

        assert batcher.open_batch is None
        assert len(batcher.pending_batches) == 1
        (delivery,) = scheduler.active_jobs()
        assert delivery.interval == 0
        assert dispatcher.calls == []

        scheduler.advance(0)
        assert len(dispatcher.calls) == 1
        assert len(dispatcher.calls[0][1]) == 3
        assert batcher.pending_batches == []
        assert scheduler.active_jobs() == []

    def test_shutdown_flush_delivers_pending_batch_once(self, batcher, scheduler, dispatcher):
        for _ in range(4):
            batcher.add(make_alert('t-1'))

        flushed = batcher.flush(trigger='shutdown')
        assert len(flushed) == 1
        assert [len(alerts) for _, alerts in dispatcher.calls] == [3, 1]

        scheduler.advance(60 * 60)
        assert len(dispatcher.calls) == 2

    def test_flushed_batch_never_flushes_twice(self, batcher, scheduler, dispatcher):
        for _ in range(3):
            batcher.add(make_alert('t-1'))
        scheduler.advance(60 * 60)
        assert batcher.flush() is None
        assert len(dispatcher.calls) == 1

    def test_stale_timer_does_not_flush_new_batch(self, batcher, scheduler, dispatcher):
        batcher.add(make_alert('t-1'))
        first = batcher.flush()
        assert first.processed_at is not None

        batcher.add(make_alert('t-2'))
        second = batcher._flush_batch(first, 'timer')
        assert second is None
        assert batcher.open_batch is not None
        assert len(dispatcher.calls) == 1

    def test_new_batch_opens_after_flush(self, batcher, scheduler, dispatcher):
        batcher.add(make_alert('t-1'))
        scheduler.advance(15 * 60)
        batcher.add(make_alert('t-1'))
        scheduler.advance(15 * 60)
        assert len(dispatcher.calls) == 2

    def test_flush_without_batch(self, batcher):
        assert batcher.flush() is None

    def test_dispatch_failure_does_not_block_other_treatments(self, scheduler, clock):
        dispatcher = RecordingDispatcher(fail_for='t-1')
        batcher = AlertBatcher(dispatcher, scheduler, MonitorConfig(), clock=clock)
        batcher.add(make_alert('t-1', priority=5, kind='temperature'))
        batcher.add(make_alert('t-2'))

        batch = batcher.flush()
        assert batch is not None
        assert [tid for tid, _ in dispatcher.calls] == ['t-2']

    def test_update_config_changes_priority_floor(self, batcher, dispatcher):
        batcher.update_config(MonitorConfig(min_alert_priority=1))
        batcher.add(make_alert(priority=1, kind='conditions'))
        assert len(batcher.open_batch) == 1


# =========================================================================
# 3. Concurrency
# =========================================================================
class SlowDispatcher(RecordingDispatcher):
    """Blocks in dispatch until released"""

    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def dispatch(self, treatment_id, alerts):
        self.started.set()
        self.release.wait(5)
        super().dispatch(treatment_id, alerts)


class TestConcurrency:

    def test_concurrent_adds_never_exceed_cap(self, clock):
        scheduler = FakeScheduler()
        dispatcher = RecordingDispatcher()
        batcher = AlertBatcher(dispatcher, scheduler, MonitorConfig(max_alerts_per_batch=2), clock=clock)
        per_thread = 200
        alerts = [[make_alert('t-1') for _ in range(per_thread)] for _ in range(8)]
        seen = []
        original_close = batcher._close

        def recording_close(batch):
            if batch is not None:
                seen.append(len(batch))
            return original_close(batch)

        batcher._close = recording_close
        start = threading.Barrier(len(alerts))

        def worker(chunk):
            start.wait()
            for alert in chunk:
                batcher.add(alert)

        threads = [threading.Thread(target=worker, args=(chunk,)) for chunk in alerts]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        scheduler.advance(0)
        batcher.flush()

        assert max(seen) <= 2
        assert all(len(group) <= 2 for _, group in dispatcher.calls)
        assert sum(len(group) for _, group in dispatcher.calls) == 8 * per_thread
        delivered = [a.id for _, group in dispatcher.calls for a in group]
        assert len(delivered) == len(set(delivered))

    def test_add_returns_while_dispatch_is_blocked(self, clock):
        scheduler = ThreadScheduler()
        dispatcher = SlowDispatcher()
        batcher = AlertBatcher(dispatcher, scheduler, MonitorConfig(max_alerts_per_batch=1), clock=clock)
        try:
            started = time.monotonic()
            batcher.add(make_alert('t-1'))
            elapsed = time.monotonic() - started

            assert elapsed < 1.0
            assert dispatcher.started.wait(2)
            assert dispatcher.calls == []
        finally:
            dispatcher.release.set()
            scheduler.shutdown()

        assert len(dispatcher.calls) == 1
