"""
Synthetic telemetry generator.

Produces one fully populated Snapshot per call, as if sampled from an
airliner in cruise. Each metric is drawn independently from a cruise range
that sits well inside its safety envelope, with two correlations:

- Mach is derived from airspeed and altitude rather than drawn:
      mach = airspeed / (661.5 + altitude * 0.001)
- Engine temperature is biased upward when RPM is drawn high

For subsystems with an active injection, the metrics come from ranges that
lie entirely outside the envelope, so the next classification is guaranteed
to flag them.

Random draws use a NumPy Generator; pass a seed for reproducible output.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

import numpy as np

from aircraft_monitor.models.snapshot import Snapshot, Subsystem

logger = logging.getLogger(__name__)


Range = Tuple[float, float]

# Cruise ranges (always inside the safety envelope)
CRUISE_RANGES: Dict[str, Range] = {
    'engine_rpm': (1800.0, 2600.0),
    'engine_temperature': (130.0, 170.0),
    'oil_pressure': (35.0, 65.0),
    'oil_temperature': (75.0, 100.0),
    'fuel_level': (40.0, 95.0),
    'fuel_consumption': (200.0, 400.0),
    'fuel_pressure': (20.0, 35.0),
    'fuel_temperature': (10.0, 30.0),
    'hydraulic_pressure': (2500.0, 3200.0),
    'hydraulic_temperature': (40.0, 65.0),
    'hydraulic_fluid_level': (90.0, 100.0),
    'altitude': (30000.0, 40000.0),
    'airspeed': (400.0, 500.0),
    'ground_speed': (380.0, 520.0),
    'vertical_speed': (-500.0, 500.0),
    'cabin_pressure': (11.0, 13.0),
    'cabin_temperature': (22.0, 26.0),
    'battery_voltage': (28.0, 30.0),
    'generator_output': (115.0, 125.0),
}

# Out-of-envelope ranges used while a subsystem is being forced
ANOMALY_RANGES: Dict[Subsystem, Dict[str, Range]] = {
    Subsystem.ENGINE: {
        'engine_rpm': (3100.0, 3600.0),
        'engine_temperature': (210.0, 260.0),
        'oil_pressure': (5.0, 15.0),
        'oil_temperature': (125.0, 160.0),
    },
    Subsystem.FUEL: {
        'fuel_level': (5.0, 15.0),
        'fuel_consumption': (1100.0, 1500.0),
        'fuel_pressure': (3.0, 8.0),
    },
    Subsystem.HYDRAULIC: {
        'hydraulic_pressure': (1500.0, 1900.0),
        'hydraulic_temperature': (85.0, 110.0),
        'hydraulic_fluid_level': (55.0, 75.0),
    },
    Subsystem.ALTITUDE: {
        'altitude': (46000.0, 52000.0),
        'vertical_speed': (5500.0, 7000.0),  # sign drawn separately
    },
    Subsystem.AIRSPEED: {
        'airspeed': (620.0, 720.0),
    },
}

# RPM above which engine temperature gets pushed up
HIGH_RPM_THRESHOLD = 2400.0
HIGH_RPM_TEMPERATURE_BIAS: Range = (5.0, 20.0)

# Speed of sound approximation (knots) and its altitude correction
MACH_BASE_KNOTS = 661.5
MACH_ALTITUDE_FACTOR = 0.001


def compute_mach(airspeed: float, altitude: float) -> float:
    """Approximate Mach number from airspeed (kts) and altitude (ft)."""
    return airspeed / (MACH_BASE_KNOTS + altitude * MACH_ALTITUDE_FACTOR)


class TelemetryGenerator:
    """
    Draws synthetic snapshots.

    Not thread-safe on its own; the pipeline calls it from one thread at a
    time.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self._produced = 0

    def _draw(self, low: float, high: float) -> float:
        return float(self.rng.uniform(low, high))

    def _range_for(self, metric: str, forced: FrozenSet[Subsystem]) -> Range:
        for subsystem in forced:
            ranges = ANOMALY_RANGES.get(subsystem)
            if ranges and metric in ranges:
                return ranges[metric]
        return CRUISE_RANGES[metric]

    def produce(self, forced: Optional[Iterable[Subsystem]] = None) -> Snapshot:
        """
        Generate one snapshot, timestamped now (UTC).

        Args:
            forced: Subsystems whose metrics must be drawn out of envelope.

        Returns:
            New Snapshot with all flags cleared; classification is a
            separate step.
        """
        forced = frozenset(forced or ())
        values = {
            metric: self._draw(*self._range_for(metric, forced))
            for metric in CRUISE_RANGES
        }

        # Hotter engine at high RPM (only meaningful in cruise)
        if Subsystem.ENGINE not in forced and values['engine_rpm'] > HIGH_RPM_THRESHOLD:
            values['engine_temperature'] += self._draw(*HIGH_RPM_TEMPERATURE_BIAS)

        if Subsystem.ALTITUDE in forced and self.rng.random() < 0.5:
            values['vertical_speed'] = -values['vertical_speed']

        values['mach_number'] = compute_mach(values['airspeed'], values['altitude'])

        self._produced += 1
        if forced:
            logger.debug(f'Generated snapshot #{self._produced} forcing {sorted(s.value for s in forced)}')

        return Snapshot(timestamp=datetime.now(timezone.utc), **values)

    @property
    def produced_count(self) -> int:
        return self._produced
