"""
In-memory holder for the latest classified snapshot.

A single-slot, thread-safe cell:
- Written only by the telemetry pipeline after each generate/classify step
- Read by status and health endpoints without touching the pipeline

Readers never see a half-annotated snapshot because the pipeline only
stores a snapshot after classification has finished.
"""

import logging
import threading
import time
from typing import Optional

from aircraft_monitor.exceptions import InvalidInputError
from aircraft_monitor.models.snapshot import Snapshot, UNKNOWN_STATUS

logger = logging.getLogger(__name__)


class SnapshotCache:
    """
    Thread-safe single-slot cache for the current snapshot.

    Also tracks how many snapshots have been stored so status endpoints can
    report whether data generation has started.
    """

    def __init__(self):
        self._snapshot: Optional[Snapshot] = None
        self._lock = threading.RLock()
        self._last_update: float = 0
        self._updates = 0

    def get(self) -> Optional[Snapshot]:
        """Latest snapshot, or None before the first one."""
        with self._lock:
            return self._snapshot

    def set(self, snapshot: Snapshot) -> None:
        """Replace the current snapshot."""
        if snapshot is None:
            raise InvalidInputError('snapshot is required')
        with self._lock:
            self._snapshot = snapshot
            self._last_update = time.time()
            self._updates += 1

    def clear(self) -> None:
        with self._lock:
            self._snapshot = None

    @property
    def has_data(self) -> bool:
        with self._lock:
            return self._snapshot is not None

    @property
    def system_status(self) -> str:
        """NORMAL/WARNING of the latest snapshot, or UNKNOWN."""
        snapshot = self.get()
        return snapshot.system_status.value if snapshot else UNKNOWN_STATUS

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            return {
                'has_data': self._snapshot is not None,
                'updates': self._updates,
                'last_update': self._last_update,
            }
