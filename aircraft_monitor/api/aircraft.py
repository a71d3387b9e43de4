"""
Aircraft telemetry API endpoints.

Provides endpoints for:
- GET  /api/aircraft/data - Current classified snapshot
- GET  /api/aircraft/status - Generation and connection status
- GET  /api/aircraft/health - Health summary
- POST /api/aircraft/simulate/<subsystem>-anomaly - Force a subsystem out of envelope
- POST /api/aircraft/alert - Broadcast an operator alert
- POST /api/aircraft/broadcast - Broadcast a custom message
"""

import logging
from datetime import datetime, timezone
from typing import Callable, TypeVar

from flask import Blueprint, abort, current_app, jsonify, request

from aircraft_monitor.exceptions import InvalidInputError
from aircraft_monitor.models.snapshot import Subsystem, UNKNOWN_STATUS
from aircraft_monitor.simulation.injection import parse_subsystem

logger = logging.getLogger(__name__)

aircraft_bp = Blueprint('aircraft', __name__, url_prefix='/api/aircraft')

T = TypeVar('T')

DEFAULT_ALERT_SEVERITY = 'INFO'

# Alert broadcast alongside each simulation request: (alertType, message)
SIMULATION_ALERTS = {
    Subsystem.ENGINE: ('ENGINE', 'Engine temperature anomaly detected'),
    Subsystem.FUEL: ('FUEL', 'Low fuel level detected'),
    Subsystem.HYDRAULIC: ('HYDRAULIC', 'Low hydraulic pressure detected'),
    Subsystem.ALTITUDE: ('ALTITUDE', 'Altitude envelope exceeded'),
    Subsystem.AIRSPEED: ('AIRSPEED', 'Airspeed envelope exceeded'),
}
SIMULATION_ALERT_SEVERITY = 'WARNING'


def _pipeline():
    return current_app.config.get('TELEMETRY_PIPELINE')


def _hub():
    return current_app.config.get('BROADCAST_HUB')


def _best_effort(getter: Callable[[], T], default: T, what: str) -> T:
    """Status endpoints report last known state instead of failing."""
    try:
        return getter()
    except Exception as e:
        logger.error(f'Status lookup for {what} failed: {e}')
        return default


def _current_snapshot():
    pipeline = _pipeline()
    return _best_effort(
        lambda: pipeline.current_snapshot if pipeline else None,
        None,
        'current snapshot',
    )


def _connected_clients() -> int:
    hub = _hub()
    return _best_effort(
        lambda: hub.connected_count() if hub else 0,
        0,
        'connected clients',
    )


@aircraft_bp.route('/data', methods=['GET'])
def get_current_data():
    """
    Get the latest classified snapshot.

    Returns 204 No Content before the first snapshot has been generated.
    """
    pipeline = _pipeline()
    snapshot = pipeline.current_snapshot if pipeline else None
    if snapshot is None:
        return '', 204
    return jsonify(snapshot.to_dict())


@aircraft_bp.route('/status', methods=['GET'])
def get_system_status():
    """
    Get generation and connection status.

    systemStatus mirrors the latest snapshot, or UNKNOWN before the first.
    """
    snapshot = _current_snapshot()

    return jsonify({
        'connectedClients': _connected_clients(),
        'dataGenerationActive': snapshot is not None,
        'lastUpdate': snapshot.timestamp.isoformat() if snapshot and snapshot.timestamp else None,
        'systemStatus': snapshot.system_status.value if snapshot else UNKNOWN_STATUS,
    })


@aircraft_bp.route('/health', methods=['GET'])
def get_system_health():
    """
    Get a health summary.

    systemStatus and anomalies are only included once data exists.
    """
    snapshot = _current_snapshot()

    result = {
        'status': 'UP',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'connectedClients': _connected_clients(),
        'dataAvailable': snapshot is not None,
    }
    if snapshot is not None:
        result['systemStatus'] = snapshot.system_status.value
        result['anomalies'] = snapshot.has_any_anomaly()

    return jsonify(result)


@aircraft_bp.route('/simulate/<kind>-anomaly', methods=['POST'])
def simulate_anomaly(kind: str):
    """
    Force one subsystem out of envelope and notify observers.

    The injection stays active for the configured number of ticks; a repeat
    request restarts the countdown.
    """
    try:
        subsystem = parse_subsystem(kind)
    except InvalidInputError:
        abort(404)

    _pipeline().request_injection(subsystem)

    alert_type, message = SIMULATION_ALERTS[subsystem]
    _hub().broadcast_alert(alert_type, message, SIMULATION_ALERT_SEVERITY)

    logger.info(f'{subsystem.value} anomaly simulation triggered')

    return jsonify({
        'message': f'{subsystem.value.capitalize()} anomaly simulation triggered',
        'status': 'success',
    })


@aircraft_bp.route('/alert', methods=['POST'])
def send_alert():
    """
    Broadcast an operator alert.

    Body: {"type": str, "message": str, "severity": str}
    Missing fields are sent as null; severity defaults to INFO.
    """
    # Raises 415 for a non-JSON content type and 400 for malformed JSON
    data = request.get_json()
    if not isinstance(data, dict):
        return jsonify({'error': 'JSON object body required'}), 400

    _hub().broadcast_alert(
        data.get('type'),
        data.get('message'),
        data.get('severity') or DEFAULT_ALERT_SEVERITY,
    )

    return jsonify({
        'message': 'Alert sent successfully',
        'status': 'success',
    })


@aircraft_bp.route('/broadcast', methods=['POST'])
def send_custom_message():
    """
    Broadcast a custom {type, data} message.

    Body: {"type": str, "data": any}
    """
    data = request.get_json()
    if not isinstance(data, dict):
        return jsonify({'error': 'JSON object body required'}), 400

    message_type = data.get('type')
    if not message_type or not isinstance(message_type, str):
        return jsonify({'error': 'type is required'}), 400

    delivered = _hub().broadcast_custom(message_type, data.get('data'))

    return jsonify({
        'message': 'Message broadcast',
        'status': 'success',
        'delivered': delivered,
    })
