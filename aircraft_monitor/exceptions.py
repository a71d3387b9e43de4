"""
Error taxonomy for the monitoring core.

Only InvalidInputError ever reaches callers of the core. DeliveryError and
SerializationError are raised internally and recovered by the broadcast hub
(eviction and message drop respectively).
"""


class MonitorError(Exception):
    """Base class for all monitoring core errors."""


class InvalidInputError(MonitorError, ValueError):
    """An absent or malformed snapshot/session/subsystem was passed in."""


class DeliveryError(MonitorError):
    """A single session failed to accept a message, or reports closed."""

    def __init__(self, session_id: str, reason: str):
        super().__init__(f'Delivery to {session_id} failed: {reason}')
        self.session_id = session_id
        self.reason = reason


class SerializationError(MonitorError):
    """A message payload could not be encoded to JSON."""
