"""
Tests for the turf_weather.main worker entry point helpers
"""

import json
from datetime import datetime

from conftest import FakeGateway, FakeScheduler, RecordingDispatcher
from turf_weather.alerting import LoggingDispatcher, WebhookDispatcher
from turf_weather.config import Settings
from turf_weather.main import build_dispatcher, load_treatments, parse_args, start_all
from turf_weather.service import TreatmentWeatherService
from turf_weather.storage import InMemorySampleStore

TREATMENTS = [
    {
        'id': 't-1',
        'type': 'Fertilization',
        'userId': 'user-1',
        'scheduledDate': '2026-05-05T08:00:00+00:00',
        'location': {'latitude': 43.26, 'longitude': -2.93, 'timezone': 'UTC'},
        'checkInterval': 60,
    },
    {
        'id': 't-2',
        'type': 'Painting',
        'scheduledDate': '2026-05-06T08:00:00+00:00',
        'location': {'latitude': 43.26, 'longitude': -2.93},
    },
    {'id': 't-3', 'type': 'Seeding'},
]


def write_treatments(tmp_path):
    path = tmp_path / 'treatments.json'
    path.write_text(json.dumps(TREATMENTS), encoding='utf-8')
    return str(path)


class TestWorkerHelpers:

    def test_load_treatments_skips_malformed(self, tmp_path):
        treatments = load_treatments(write_treatments(tmp_path))
        assert [t.treatment_id for t in treatments] == ['t-1', 't-2']
        assert treatments[0].scheduled_date == datetime.fromisoformat('2026-05-05T08:00:00+00:00')
        assert treatments[0].check_interval == 60
        assert treatments[1].location.timezone == 'UTC'

    def test_log_only_dispatch_without_webhook(self, tmp_path):
        treatments = load_treatments(write_treatments(tmp_path))
        assert isinstance(build_dispatcher(Settings(alert_webhook_url=None), treatments), LoggingDispatcher)

    def test_webhook_dispatch_resolves_treatments(self, tmp_path):
        treatments = load_treatments(write_treatments(tmp_path))
        dispatcher = build_dispatcher(Settings(alert_webhook_url='https://hooks.test/alerts'), treatments)
        assert isinstance(dispatcher, WebhookDispatcher)
        assert dispatcher.lookup('t-1').user_id == 'user-1'
        assert dispatcher.lookup('missing') is None

    def test_start_all_skips_unknown_types(self, tmp_path):
        treatments = load_treatments(write_treatments(tmp_path))
        service = TreatmentWeatherService(FakeGateway(), RecordingDispatcher(), InMemorySampleStore(), FakeScheduler())

        assert start_all(service, treatments) == 1
        assert service.is_monitoring('t-1')
        assert service.monitor.get_session('t-1').config.check_interval == 60
        assert not service.is_monitoring('t-2')

    def test_parse_args(self):
        args = parse_args(['--treatments', 'treatments.json', '--no-metrics'])
        assert args.treatments == 'treatments.json'
        assert args.no_metrics
