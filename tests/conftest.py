import json
import threading
import time
from datetime import datetime, timezone

import pytest

from aircraft_monitor.models.snapshot import Snapshot
from aircraft_monitor.services.broadcast import BroadcastHub


class FakeSession:
    """In-memory session that records every frame it is sent."""

    def __init__(self, session_id, open=True, fail=False, delay=0.0):
        self.id = session_id
        self.open = open
        self.fail = fail
        self.delay = delay
        self.sent = []
        self.send_calls = 0
        self._lock = threading.Lock()

    def is_open(self):
        return self.open

    def send(self, data):
        with self._lock:
            self.send_calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise IOError('Connection lost')
        with self._lock:
            self.sent.append(data)

    @property
    def messages(self):
        with self._lock:
            return [json.loads(frame) for frame in self.sent]

    def types(self):
        return [m['type'] for m in self.messages]

    def reset(self):
        with self._lock:
            self.sent.clear()
            self.send_calls = 0


def build_snapshot(**overrides):
    values = {
        'timestamp': datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
        'engine_rpm': 2200.0,
        'engine_temperature': 150.0,
        'oil_pressure': 45.0,
        'oil_temperature': 90.0,
        'fuel_level': 75.0,
        'fuel_consumption': 250.0,
        'fuel_pressure': 25.0,
        'fuel_temperature': 20.0,
        'hydraulic_pressure': 2800.0,
        'hydraulic_temperature': 55.0,
        'hydraulic_fluid_level': 95.0,
        'altitude': 35000.0,
        'airspeed': 450.0,
        'ground_speed': 440.0,
        'mach_number': 0.7,
        'vertical_speed': -200.0,
        'cabin_pressure': 12.0,
        'cabin_temperature': 24.0,
        'battery_voltage': 28.5,
        'generator_output': 120.0,
    }
    values.update(overrides)
    return Snapshot(**values)


def build_anomalous_snapshot():
    return build_snapshot(
        engine_rpm=4000.0,
        engine_temperature=250.0,
        oil_pressure=10.0,
        oil_temperature=150.0,
        fuel_level=15.0,
        fuel_consumption=1200.0,
        fuel_pressure=5.0,
        hydraulic_pressure=1800.0,
        hydraulic_temperature=90.0,
        hydraulic_fluid_level=70.0,
        altitude=50000.0,
        airspeed=700.0,
        mach_number=1.2,
        vertical_speed=6000.0,
    )


@pytest.fixture
def snapshot():
    return build_snapshot()


@pytest.fixture
def hub():
    hub = BroadcastHub(send_timeout=1.0)
    yield hub
    hub.close()


@pytest.fixture
def session_factory():
    counter = iter(range(1, 1000))

    def make(**kwargs):
        return FakeSession(f'session-{next(counter)}', **kwargs)

    return make


@pytest.fixture
def app():
    from aircraft_monitor.app import create_app

    app = create_app(start_simulation=False)
    yield app
    app.config['TELEMETRY_PIPELINE'].stop()
    app.config['BROADCAST_HUB'].close()


@pytest.fixture
def client(app):
    return app.test_client()
