"""
Operator-requested anomaly injection.

Each subsystem runs a small countdown state machine:

    Idle --request--> Active(N) --tick--> Active(N-1) ... --tick--> Idle

A request while Active resets the countdown to N (no stacking). The
countdown is shared between request callers (HTTP threads) and the
pipeline tick, so all access goes through one lock.
"""

import logging
import threading
from typing import Dict, FrozenSet, Optional, Union

from aircraft_monitor.config import config
from aircraft_monitor.exceptions import InvalidInputError
from aircraft_monitor.models.snapshot import Subsystem

logger = logging.getLogger(__name__)


def parse_subsystem(value: Union[Subsystem, str, None]) -> Subsystem:
    """Accept a Subsystem or its name ('engine', 'FUEL', ...)."""
    if value is None:
        raise InvalidInputError('subsystem is required')
    if isinstance(value, Subsystem):
        return value
    try:
        return Subsystem(str(value).strip().lower())
    except ValueError:
        raise InvalidInputError(f'Unknown subsystem: {value!r}') from None


class InjectionController:
    """
    Tracks which subsystems are being forced out of envelope.

    Idle subsystems are simply absent from the countdown map.
    """

    def __init__(self, duration_ticks: Optional[int] = None):
        self.duration_ticks = duration_ticks or config.simulation.anomaly_duration_ticks
        if self.duration_ticks < 1:
            raise InvalidInputError('duration_ticks must be at least 1')

        self._remaining: Dict[Subsystem, int] = {}
        self._lock = threading.Lock()

    def request(self, subsystem: Union[Subsystem, str]) -> None:
        """Start (or restart) forcing a subsystem for duration_ticks ticks."""
        subsystem = parse_subsystem(subsystem)
        with self._lock:
            restarted = subsystem in self._remaining
            self._remaining[subsystem] = self.duration_ticks

        if restarted:
            logger.info(f'Anomaly injection for {subsystem.value} reset to {self.duration_ticks} ticks')
        else:
            logger.info(f'Anomaly injection requested for {subsystem.value} ({self.duration_ticks} ticks)')

    def tick(self) -> FrozenSet[Subsystem]:
        """
        Advance every countdown by one tick.

        Returns the subsystems still active after the decrement; those are
        the ones to force on this tick. A countdown reaching zero returns
        the subsystem to Idle.
        """
        expired = []
        with self._lock:
            for subsystem in list(self._remaining):
                self._remaining[subsystem] -= 1
                if self._remaining[subsystem] <= 0:
                    del self._remaining[subsystem]
                    expired.append(subsystem)
            active = frozenset(self._remaining)

        for subsystem in expired:
            logger.info(f'Anomaly injection for {subsystem.value} expired')

        return active

    def is_active(self, subsystem: Union[Subsystem, str]) -> bool:
        subsystem = parse_subsystem(subsystem)
        with self._lock:
            return subsystem in self._remaining

    def remaining(self, subsystem: Union[Subsystem, str]) -> int:
        """Ticks left for a subsystem, 0 when Idle."""
        subsystem = parse_subsystem(subsystem)
        with self._lock:
            return self._remaining.get(subsystem, 0)

    def active(self) -> FrozenSet[Subsystem]:
        with self._lock:
            return frozenset(self._remaining)

    def clear(self) -> None:
        """Return every subsystem to Idle."""
        with self._lock:
            self._remaining.clear()

    @property
    def stats(self) -> dict:
        with self._lock:
            return {s.value: n for s, n in self._remaining.items()}
