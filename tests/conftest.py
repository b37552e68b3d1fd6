"""Shared fixtures: an in-memory GoldenGate Administration Service and a fake clock."""

import json
from urllib.parse import urlparse

import pytest
import requests

from ggfallback.utils.goldengate import (
    GoldenGateProcessManager,
    ProcessKind,
    ReplicationUnit,
)

GG_URL = 'https://gg.example.internal'
EXTRACT_NAME = 'EXB2A23A'
REPLICAT_NAME = 'RPE117EE'


class FakeResponse:
    def __init__(self, status_code, payload=None, text=None):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)


def _message(code, text):
    return {'messages': [{'code': code, 'severity': 'INFO', 'title': text}]}


class FakeGoldenGate:
    """
    Minimal stand-in for /services/v2/{extracts|replicats}/{name}.

    Tracks each process status and records every call as
    (method, kind, name, payload). Reposition is rejected while a process is
    running, like the real service.
    """

    START_CODES = {'extracts': 'OGG-15426', 'replicats': 'OGG-15445'}
    STOP_CODES = {'extracts': 'OGG-15427', 'replicats': 'OGG-15428'}

    def __init__(self, **processes):
        self.status = {}
        self.calls = []
        self.requests = []
        self.replies = {}
        self.stays_stopped = set()
        self.unreachable = False
        for key, status in processes.items():
            kind, name = key.split('__')
            self.status[(kind, name)] = status

    def _locate(self, url):
        parts = urlparse(url).path.strip('/').split('/')
        return parts[-2], parts[-1]

    def get(self, url, **kwargs):
        self.requests.append(('GET', url, kwargs))
        if self.unreachable:
            raise requests.exceptions.ConnectionError('connection refused')
        kind, name = self._locate(url)
        self.calls.append(('GET', kind, name, None))
        if (kind, name) not in self.status:
            return FakeResponse(404, _message('OGG-12029', f'The item type with name {name} does not exist.'))
        return FakeResponse(200, {'response': {'status': self.status[(kind, name)]}})

    def patch(self, url, json=None, **kwargs):
        self.requests.append(('PATCH', url, kwargs))
        if self.unreachable:
            raise requests.exceptions.ConnectionError('connection refused')
        kind, name = self._locate(url)
        self.calls.append(('PATCH', kind, name, json))
        key = (kind, name)
        action = self._action(json)

        if (kind, name, action) in self.replies:
            return self.replies[(kind, name, action)]
        if key not in self.status:
            return FakeResponse(404, _message('OGG-12029', f'The item type with name {name} does not exist.'))

        label = f"{kind[:-1].upper()} {name}"
        if action == 'reposition':
            if self.status[key] == 'running':
                return FakeResponse(400, _message('OGG-12000', f'{label} is running; stop it before altering.'))
            return FakeResponse(200, _message('OGG-08100', f'{label} altered.'))
        if action == 'stop':
            self.status[key] = 'stopped'
            return FakeResponse(200, _message(self.STOP_CODES[kind], f'{label} stopped.'))
        if name not in self.stays_stopped:
            self.status[key] = 'running'
        return FakeResponse(200, _message(self.START_CODES[kind], f'{label} started.'))

    @staticmethod
    def _action(payload):
        if payload.get('status') == 'running':
            return 'start'
        if 'begin' in payload:
            return 'reposition'
        return 'stop'

    def mutating_calls(self):
        return [call for call in self.calls if call[0] == 'PATCH']

    def actions(self):
        """[(kind, name, action)] for every PATCH, in order"""
        return [(kind, name, self._action(payload)) for _, kind, name, payload in self.mutating_calls()]


class FakeClock:
    """Monotonic clock that only advances when slept on"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def gg_settings(settings):
    settings.GOLDENGATE_CONFIG = {
        'VERIFY_TLS': False,
        'REQUEST_TIMEOUT': 90,
        'POLL_INTERVAL': 2,
        'WAIT_TIMEOUT': 30,
        'SETTLE_DELAY': 5,
        'LOG_DIR': '.',
        'STOPPED_STATUSES': ['stopped', 'abended', 'killed'],
        'ACK_MARKERS': {},
        'ALREADY_MARKERS': {},
    }
    return settings


def install(monkeypatch, fake):
    monkeypatch.setattr(requests, 'get', fake.get)
    monkeypatch.setattr(requests, 'patch', fake.patch)
    return fake


@pytest.fixture
def fake_gg(monkeypatch, gg_settings):
    """Both processes exist and are stopped"""
    fake = FakeGoldenGate(**{
        f'extracts__{EXTRACT_NAME}': 'stopped',
        f'replicats__{REPLICAT_NAME}': 'stopped',
    })
    return install(monkeypatch, fake)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(fake_gg, clock):
    return GoldenGateProcessManager(
        GG_URL,
        'oggadmin',
        'secret',
        sleep=clock.sleep,
        clock=clock,
    )


@pytest.fixture
def extract():
    return ReplicationUnit(ProcessKind.EXTRACT, EXTRACT_NAME)


@pytest.fixture
def replicat():
    return ReplicationUnit(ProcessKind.REPLICAT, REPLICAT_NAME)
