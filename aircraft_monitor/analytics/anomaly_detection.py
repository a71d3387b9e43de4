"""
Envelope-based anomaly classification.

Annotates a snapshot with one flag per subsystem. A subsystem is anomalous
when any of its metrics falls outside its inclusive safety bound, or is not
a finite number.

Classification is a pure function of the snapshot's metrics:
- Flags are assigned, never OR-ed with previous values, so classifying an
  already-classified snapshot gives the same result
- All flags are computed before any is written, so a failure part-way
  through leaves the snapshot untouched

The checks are vectorized per subsystem with NumPy against the
precomputed envelope arrays.
"""

import logging
from typing import Dict

import numpy as np

from aircraft_monitor.analytics.envelope import ENVELOPE_ARRAYS
from aircraft_monitor.exceptions import InvalidInputError
from aircraft_monitor.models.snapshot import Snapshot, Subsystem

logger = logging.getLogger(__name__)


def _metric_values(snapshot: Snapshot, metrics) -> np.ndarray:
    # None becomes NaN, which then fails the finiteness check
    return np.array(
        [np.nan if getattr(snapshot, m) is None else getattr(snapshot, m) for m in metrics],
        dtype=np.float64,
    )


def evaluate(snapshot: Snapshot) -> Dict[Subsystem, bool]:
    """
    Compute subsystem anomaly flags without touching the snapshot.

    Returns dict mapping subsystem -> True if anomalous.
    """
    if snapshot is None:
        raise InvalidInputError('snapshot is required')

    flags = {}
    for subsystem, (metrics, lows, highs) in ENVELOPE_ARRAYS.items():
        values = _metric_values(snapshot, metrics)
        # NaN compares False against both bounds, so it can never pass
        within = np.isfinite(values) & (values >= lows) & (values <= highs)
        flags[subsystem] = not bool(within.all())
    return flags


def classify(snapshot: Snapshot) -> Snapshot:
    """
    Annotate snapshot in place with anomaly flags.

    Returns the same snapshot instance. Raises InvalidInputError if the
    snapshot is None.
    """
    flags = evaluate(snapshot)
    for subsystem, is_anomalous in flags.items():
        snapshot.set_flag(subsystem, is_anomalous)

    if snapshot.has_any_anomaly():
        flagged = ', '.join(s.value for s, f in flags.items() if f)
        logger.debug(f'Anomalies detected: {flagged}')

    return snapshot


def has_any_anomaly(snapshot: Snapshot) -> bool:
    """OR of the five subsystem flags."""
    if snapshot is None:
        raise InvalidInputError('snapshot is required')
    return snapshot.has_any_anomaly()
