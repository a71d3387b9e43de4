"""
Safety envelope reference table.

Static, process-lifetime bounds per metric. Bounds are inclusive and may be
one-sided (None for an open side). Metrics are grouped by the subsystem flag
they contribute to.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import numpy as np

from aircraft_monitor.models.snapshot import Subsystem


@dataclass(frozen=True)
class Bound:
    """Inclusive [min, max] range; either side may be open."""
    min_val: Optional[float] = None
    max_val: Optional[float] = None

    def contains(self, value: Optional[float]) -> bool:
        """
        Check a single value against the bound.

        None, NaN and +/-inf are never contained, even against an open side.
        """
        if value is None:
            return False
        value = float(value)
        if not np.isfinite(value):
            return False
        if self.min_val is not None and value < self.min_val:
            return False
        if self.max_val is not None and value > self.max_val:
            return False
        return True

    @property
    def low(self) -> float:
        return -np.inf if self.min_val is None else self.min_val

    @property
    def high(self) -> float:
        return np.inf if self.max_val is None else self.max_val


SAFETY_ENVELOPE: Mapping[Subsystem, Mapping[str, Bound]] = MappingProxyType({
    Subsystem.ENGINE: MappingProxyType({
        'engine_rpm': Bound(500.0, 3000.0),
        'engine_temperature': Bound(max_val=200.0),
        'oil_pressure': Bound(20.0, 100.0),
        'oil_temperature': Bound(max_val=120.0),
    }),
    Subsystem.FUEL: MappingProxyType({
        'fuel_level': Bound(min_val=20.0),
        'fuel_consumption': Bound(max_val=1000.0),
        'fuel_pressure': Bound(10.0, 50.0),
    }),
    Subsystem.HYDRAULIC: MappingProxyType({
        'hydraulic_pressure': Bound(2000.0, 3500.0),
        'hydraulic_temperature': Bound(max_val=80.0),
        'hydraulic_fluid_level': Bound(min_val=80.0),
    }),
    Subsystem.ALTITUDE: MappingProxyType({
        'altitude': Bound(max_val=45000.0),
        'vertical_speed': Bound(-5000.0, 5000.0),
    }),
    Subsystem.AIRSPEED: MappingProxyType({
        'airspeed': Bound(max_val=600.0),
        'mach_number': Bound(max_val=0.9),
    }),
})


def bounds_for(subsystem: Subsystem) -> Mapping[str, Bound]:
    return SAFETY_ENVELOPE[subsystem]


def bound_for(metric: str) -> Tuple[Subsystem, Bound]:
    """Look up which subsystem a metric belongs to, and its bound."""
    for subsystem, bounds in SAFETY_ENVELOPE.items():
        if metric in bounds:
            return subsystem, bounds[metric]
    raise KeyError(metric)


def _bound_arrays(subsystem: Subsystem) -> Tuple[Tuple[str, ...], np.ndarray, np.ndarray]:
    bounds = SAFETY_ENVELOPE[subsystem]
    metrics = tuple(bounds)
    lows = np.array([bounds[m].low for m in metrics], dtype=np.float64)
    highs = np.array([bounds[m].high for m in metrics], dtype=np.float64)
    lows.setflags(write=False)
    highs.setflags(write=False)
    return metrics, lows, highs


# Precomputed per-subsystem (metric names, lower bounds, upper bounds) for
# vectorized classification
ENVELOPE_ARRAYS = MappingProxyType({
    subsystem: _bound_arrays(subsystem) for subsystem in Subsystem
})
