"""
Data models for the aircraft monitor.

- Snapshot: one fully populated telemetry reading plus anomaly flags
- Message kinds: the closed set of frames pushed to observers
"""

from aircraft_monitor.models.snapshot import (
    Snapshot,
    Subsystem,
    SystemStatus,
    UNKNOWN_STATUS,
)
from aircraft_monitor.models.messages import (
    MessageType,
    ConnectionMessage,
    SnapshotMessage,
    AlertMessage,
    EchoMessage,
    CustomMessage,
    encode,
)

__all__ = [
    'Snapshot',
    'Subsystem',
    'SystemStatus',
    'UNKNOWN_STATUS',
    'MessageType',
    'ConnectionMessage',
    'SnapshotMessage',
    'AlertMessage',
    'EchoMessage',
    'CustomMessage',
    'encode',
]
