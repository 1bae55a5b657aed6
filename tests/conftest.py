"""
Shared pytest fixtures for the turf weather engine tests.

Provides a manually driven scheduler, an in-process weather gateway and a
recording dispatcher so that tests never depend on real timers, the network
or a database.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest

from turf_weather.alerting import AlertDispatcher
from turf_weather.errors import GatewayUnavailable
from turf_weather.models import ForecastPoint, Location, WeatherAlert, WeatherReading
from turf_weather.monitoring import CancelToken, Scheduler
from turf_weather.providers import BaseWeatherProvider
from turf_weather.storage import InMemorySampleStore

# ---------------------------------------------------------------------------
# Constants used across test fixtures
# ---------------------------------------------------------------------------
START = datetime(2026, 5, 4, 0, 0, tzinfo=timezone.utc)
LOCATION = Location(latitude=43.26, longitude=-2.93, timezone='UTC')


def perfect_reading(**overrides) -> WeatherReading:
    """Fertilization-ideal weather"""
    values = dict(temperature=20.0, humidity=50.0, precipitation=0.0, wind_speed=5.0, conditions='Clear')
    values.update(overrides)
    return WeatherReading(**values)


def bad_reading(**overrides) -> WeatherReading:
    """Weather that scores 1 for Fertilization"""
    values = dict(temperature=35.0, humidity=50.0, precipitation=5.0, wind_speed=15.0, conditions='Rain')
    values.update(overrides)
    return WeatherReading(**values)


_alert_ids = itertools.count(1)


def make_alert(treatment_id: str = 't-1', priority: int = 4, kind: str = 'wind', **overrides) -> WeatherAlert:
    values = dict(
        id=f"alert-{next(_alert_ids)}",
        treatment_id=treatment_id,
        treatment_type='Fertilization',
        kind=kind,
        severity='critical' if priority == 5 else 'warning',
        priority=priority,
        message=f"{kind} alert",
        created_at=START,
        location=LOCATION,
        original_date=START + timedelta(days=1),
    )
    values.update(overrides)
    return WeatherAlert(**values)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------
class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeJob:
    def __init__(self, token: CancelToken, fn: Callable[[], None], interval: float, due: float, recurring: bool):
        self.token = token
        self.fn = fn
        self.interval = interval
        self.due = due
        self.recurring = recurring
        self.done = False
        self.runs = 0

    @property
    def active(self) -> bool:
        return not self.done and not self.token.cancelled


class FakeScheduler(Scheduler):
    """Scheduler driven by advance(seconds) instead of real time"""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.elapsed = 0.0
        self.clock = clock
        self.jobs: List[FakeJob] = []

    def schedule(self, interval_seconds, fn, name=''):
        token = CancelToken(name)
        self.jobs.append(FakeJob(token, fn, interval_seconds, self.elapsed + interval_seconds, True))
        return token

    def schedule_once(self, delay_seconds, fn, name=''):
        token = CancelToken(name)
        self.jobs.append(FakeJob(token, fn, delay_seconds, self.elapsed + delay_seconds, False))
        return token

    def active_jobs(self, recurring: Optional[bool] = None) -> List[FakeJob]:
        return [j for j in self.jobs if j.active and (recurring is None or j.recurring == recurring)]

    def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        while True:
            due = sorted((j for j in self.active_jobs() if j.due <= target), key=lambda j: j.due)
            if not due:
                break
            job = due[0]
            step = job.due - self.elapsed
            self.elapsed = job.due
            if self.clock is not None:
                self.clock.advance(seconds=step)
            job.runs += 1
            if job.recurring:
                job.due += job.interval
            else:
                job.done = True
            job.fn()
        if self.clock is not None:
            self.clock.advance(seconds=target - self.elapsed)
        self.elapsed = target

    def shutdown(self) -> None:
        for job in self.jobs:
            job.token.cancel()


class FakeGateway(BaseWeatherProvider):
    def __init__(self, current: Optional[WeatherReading] = None, forecast: Optional[List[ForecastPoint]] = None):
        self.current = current or perfect_reading()
        self.forecast = forecast or []
        self.fail = False
        self.forecast_calls: List[int] = []
        self.current_calls = 0

    def get_current_weather(self, location):
        self.current_calls += 1
        if self.fail:
            raise GatewayUnavailable("gateway down")
        return self.current

    def get_forecast(self, location, days=7):
        self.forecast_calls.append(days)
        if self.fail:
            raise GatewayUnavailable("gateway down")
        return list(self.forecast)


class RecordingDispatcher(AlertDispatcher):
    def __init__(self, fail_for: Optional[str] = None):
        self.calls = []
        self.fail_for = fail_for

    def dispatch(self, treatment_id, alerts):
        if treatment_id == self.fail_for:
            raise RuntimeError("delivery failed")
        self.calls.append((treatment_id, list(alerts)))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def store():
    return InMemorySampleStore()


@pytest.fixture
def location():
    return LOCATION
