import json
import math

import pytest

from aircraft_monitor.analytics import Bound, classify
from aircraft_monitor.exceptions import InvalidInputError, SerializationError
from aircraft_monitor.models import (
    AlertMessage,
    ConnectionMessage,
    CustomMessage,
    EchoMessage,
    Snapshot,
    SnapshotMessage,
    SystemStatus,
    encode,
)

from conftest import build_anomalous_snapshot, build_snapshot


def test_default_snapshot_is_empty_and_normal():
    snapshot = Snapshot()

    assert snapshot.timestamp is None
    assert snapshot.engine_rpm == 0.0
    assert not snapshot.has_any_anomaly()
    assert snapshot.system_status is SystemStatus.NORMAL


def test_snapshot_wire_fields():
    data = classify(build_snapshot()).to_dict()

    assert data['timestamp'] == '2025-01-01T12:00:00+00:00'
    assert data['engineRPM'] == 2200.0
    assert data['engineTemperature'] == 150.0
    assert data['fuelLevel'] == 75.0
    assert data['hydraulicFluidLevel'] == 95.0
    assert data['machNumber'] == 0.7
    assert data['generatorOutput'] == 120.0
    assert data['engineAnomaly'] is False
    assert data['airspeedAnomaly'] is False
    assert data['systemStatus'] == 'NORMAL'
    # 20 metrics, timestamp, 5 flags, status
    assert len(data) == 27


def test_snapshot_wire_reports_non_finite_as_null():
    data = classify(build_snapshot(altitude=math.nan, airspeed=math.inf)).to_dict()

    assert data['altitude'] is None
    assert data['airspeed'] is None
    assert data['altitudeAnomaly'] is True
    assert data['systemStatus'] == 'WARNING'
    json.dumps(data, allow_nan=False)


def test_snapshots_with_same_values_are_equal():
    assert build_snapshot() == build_snapshot()
    assert build_snapshot() != build_snapshot(engine_rpm=2201.0)
    assert 'Snapshot' in repr(build_snapshot())


def test_bound_contains_is_inclusive():
    bound = Bound(20.0, 100.0)

    assert bound.contains(20.0)
    assert bound.contains(100.0)
    assert not bound.contains(19.999)
    assert not bound.contains(100.001)
    assert not bound.contains(math.nan)
    assert not bound.contains(None)


def test_one_sided_bound():
    bound = Bound(max_val=45000.0)

    assert bound.contains(-1e9)
    assert not bound.contains(-math.inf)
    assert bound.low == -math.inf and bound.high == 45000.0


def test_encode_connection_message():
    assert json.loads(encode(ConnectionMessage())) == {
        'type': 'connection',
        'message': 'Connected to Aircraft Monitoring System',
    }


def test_encode_snapshot_message():
    data = json.loads(encode(SnapshotMessage(classify(build_anomalous_snapshot()))))

    assert data['type'] == 'aircraft_data'
    assert data['engineAnomaly'] is True
    assert data['systemStatus'] == 'WARNING'


def test_encode_alert_message_keeps_null_fields():
    data = json.loads(encode(AlertMessage(None, '', None)))

    assert data == {'type': 'alert', 'alertType': None, 'message': '', 'severity': None}


def test_encode_echo_keeps_content_verbatim():
    content = '{"nested": "json"} Special chars: !@#$%^&*()'
    assert json.loads(encode(EchoMessage(content)))['data'] == content


def test_encode_custom_message():
    data = json.loads(encode(CustomMessage('maintenance', {'items': [1, 2, 3]})))
    assert data == {'type': 'maintenance', 'data': {'items': [1, 2, 3]}}


@pytest.mark.parametrize('payload', [object(), {'value': math.nan}, {1j: 'complex key'}])
def test_encode_unserializable_payload(payload):
    with pytest.raises(SerializationError):
        encode(CustomMessage('custom', payload))


def test_encode_requires_message():
    with pytest.raises(InvalidInputError):
        encode(None)
