"""
Analytics module for the aircraft monitor.

Classifies telemetry snapshots against static safety envelopes using NumPy:
- Inclusive per-metric bounds, possibly one-sided
- Non-finite values always fail their bound
- One anomaly flag per subsystem, aggregated into NORMAL/WARNING
"""

from aircraft_monitor.analytics.envelope import SAFETY_ENVELOPE, Bound, bound_for, bounds_for
from aircraft_monitor.analytics.anomaly_detection import classify, evaluate, has_any_anomaly

__all__ = [
    'SAFETY_ENVELOPE',
    'Bound',
    'bound_for',
    'bounds_for',
    'classify',
    'evaluate',
    'has_any_anomaly',
]
