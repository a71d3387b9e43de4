"""
Outbound wire messages.

Every frame pushed to an observer is a JSON object with a `type`
discriminator. Each kind has its own dataclass with a to_dict() encoder,
and encode() is the single place payloads become text:

    connection     {type, message}
    aircraft_data  {type, ...flattened snapshot}
    alert          {type, alertType, message, severity}
    echo           {type, data}
    <custom tag>   {type, data}
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from aircraft_monitor.exceptions import InvalidInputError, SerializationError
from aircraft_monitor.models.snapshot import Snapshot


class MessageType(str, Enum):
    """Built-in message discriminators."""
    CONNECTION = 'connection'
    AIRCRAFT_DATA = 'aircraft_data'
    ALERT = 'alert'
    ECHO = 'echo'


CONNECTION_GREETING = 'Connected to Aircraft Monitoring System'


@dataclass(frozen=True)
class ConnectionMessage:
    message: str = CONNECTION_GREETING

    def to_dict(self) -> dict:
        return {'type': MessageType.CONNECTION.value, 'message': self.message}


@dataclass(frozen=True)
class SnapshotMessage:
    snapshot: Snapshot

    def to_dict(self) -> dict:
        # Discriminator first, snapshot fields can never shadow it
        return {'type': MessageType.AIRCRAFT_DATA.value, **self.snapshot.to_dict()}


@dataclass(frozen=True)
class AlertMessage:
    alert_type: Optional[str]
    message: Optional[str]
    severity: Optional[str]

    def to_dict(self) -> dict:
        return {
            'type': MessageType.ALERT.value,
            'alertType': self.alert_type,
            'message': self.message,
            'severity': self.severity,
        }


@dataclass(frozen=True)
class EchoMessage:
    data: str

    def to_dict(self) -> dict:
        return {'type': MessageType.ECHO.value, 'data': self.data}


@dataclass(frozen=True)
class CustomMessage:
    """Caller-tagged envelope; the payload is encoded as-is."""
    tag: str
    data: Any

    def to_dict(self) -> dict:
        return {'type': self.tag, 'data': self.data}


Message = Union[ConnectionMessage, SnapshotMessage, AlertMessage, EchoMessage, CustomMessage]


def encode(message: Message) -> str:
    """
    Encode a message to compact JSON text.

    Raises SerializationError if the payload holds values JSON cannot
    represent (arbitrary objects, NaN/Infinity, non-string keys).
    """
    if message is None:
        raise InvalidInputError('message is required')
    try:
        return json.dumps(message.to_dict(), separators=(',', ':'), allow_nan=False)
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(f'Cannot encode {type(message).__name__}: {e}') from e
