import itertools
import math
from dataclasses import replace

import numpy as np
import pytest

from aircraft_monitor.analytics import SAFETY_ENVELOPE, bound_for, classify, evaluate, has_any_anomaly
from aircraft_monitor.exceptions import InvalidInputError
from aircraft_monitor.models.snapshot import Subsystem, SystemStatus

from conftest import build_anomalous_snapshot, build_snapshot


ALL_METRICS = [
    (subsystem, metric, bound)
    for subsystem, bounds in SAFETY_ENVELOPE.items()
    for metric, bound in bounds.items()
]

LOWER_EDGES = [(s, m, b.min_val) for s, m, b in ALL_METRICS if b.min_val is not None]
UPPER_EDGES = [(s, m, b.max_val) for s, m, b in ALL_METRICS if b.max_val is not None]


def _ids(cases):
    return [case[1] for case in cases]


def test_normal_reading_has_no_anomalies():
    result = classify(build_snapshot())

    assert result.flags == {s: False for s in Subsystem}
    assert not result.has_any_anomaly()
    assert result.system_status is SystemStatus.NORMAL


def test_out_of_envelope_reading_flags_every_subsystem():
    result = classify(build_anomalous_snapshot())

    assert all(result.flags.values())
    assert result.system_status is SystemStatus.WARNING


def test_classify_returns_same_instance_and_keeps_timestamp():
    snapshot = build_snapshot()
    original_timestamp = snapshot.timestamp

    assert classify(snapshot) is snapshot
    assert snapshot.timestamp == original_timestamp


def test_classify_rejects_missing_snapshot():
    with pytest.raises(InvalidInputError):
        classify(None)
    with pytest.raises(InvalidInputError):
        has_any_anomaly(None)


def test_rpm_scenario_boundary():
    low = classify(build_snapshot(engine_rpm=499.9))
    assert low.engine_anomaly
    assert low.system_status is SystemStatus.WARNING

    at_bound = classify(build_snapshot(engine_rpm=500.0))
    assert not at_bound.engine_anomaly
    assert at_bound.system_status is SystemStatus.NORMAL


def test_mach_scenario_boundary():
    assert not classify(build_snapshot(mach_number=0.9)).airspeed_anomaly
    assert classify(build_snapshot(mach_number=0.91)).airspeed_anomaly


@pytest.mark.parametrize('subsystem,metric,edge', LOWER_EDGES, ids=_ids(LOWER_EDGES))
def test_value_at_lower_bound_is_normal(subsystem, metric, edge):
    at_edge = classify(build_snapshot(**{metric: edge}))
    assert not at_edge.flag(subsystem)

    beyond = classify(build_snapshot(**{metric: float(np.nextafter(edge, -np.inf))}))
    assert beyond.flag(subsystem)


@pytest.mark.parametrize('subsystem,metric,edge', UPPER_EDGES, ids=_ids(UPPER_EDGES))
def test_value_at_upper_bound_is_normal(subsystem, metric, edge):
    at_edge = classify(build_snapshot(**{metric: edge}))
    assert not at_edge.flag(subsystem)

    beyond = classify(build_snapshot(**{metric: float(np.nextafter(edge, np.inf))}))
    assert beyond.flag(subsystem)


@pytest.mark.parametrize('value', [math.nan, math.inf, -math.inf, None])
@pytest.mark.parametrize('subsystem,metric,bound', ALL_METRICS, ids=_ids(ALL_METRICS))
def test_non_finite_metric_is_anomalous(subsystem, metric, bound, value):
    result = classify(build_snapshot(**{metric: value}))

    assert result.flag(subsystem)
    # Only the subsystem owning the metric is affected
    assert [s for s, flagged in result.flags.items() if flagged] == [subsystem]


def test_open_sides_still_reject_non_finite_values():
    # altitude has no lower bound, fuel_level no upper bound
    assert classify(build_snapshot(altitude=-math.inf)).altitude_anomaly
    assert classify(build_snapshot(fuel_level=math.inf)).fuel_anomaly
    assert not classify(build_snapshot(altitude=-1000.0)).altitude_anomaly


def test_unbounded_metrics_never_raise_flags():
    result = classify(build_snapshot(
        fuel_temperature=-80.0,
        ground_speed=900.0,
        cabin_temperature=60.0,
        generator_output=0.0,
    ))
    assert not result.has_any_anomaly()


def test_classification_is_idempotent():
    for snapshot in (build_snapshot(), build_anomalous_snapshot(), build_snapshot(engine_rpm=3000.5)):
        once = classify(replace(snapshot))
        twice = classify(classify(replace(snapshot)))

        assert twice == once
        assert twice.flags == once.flags


def test_stale_flags_are_cleared():
    snapshot = build_snapshot()
    snapshot.engine_anomaly = True
    snapshot.airspeed_anomaly = True

    classify(snapshot)

    assert not snapshot.has_any_anomaly()


def test_failed_classification_leaves_snapshot_untouched():
    snapshot = build_snapshot(engine_rpm='not-a-number')
    snapshot.hydraulic_anomaly = True

    with pytest.raises(ValueError):
        classify(snapshot)

    assert snapshot.hydraulic_anomaly
    assert not snapshot.engine_anomaly


def test_evaluate_does_not_mutate():
    snapshot = build_anomalous_snapshot()
    flags = evaluate(snapshot)

    assert all(flags.values())
    assert not snapshot.has_any_anomaly()


@pytest.mark.parametrize('combo', list(itertools.product([False, True], repeat=5)))
def test_has_any_anomaly_is_or_of_flags(combo):
    snapshot = build_snapshot()
    for subsystem, value in zip(Subsystem, combo):
        snapshot.set_flag(subsystem, value)

    assert has_any_anomaly(snapshot) == any(combo)
    expected = SystemStatus.WARNING if any(combo) else SystemStatus.NORMAL
    assert snapshot.system_status is expected


def test_bound_lookup():
    subsystem, bound = bound_for('mach_number')
    assert subsystem is Subsystem.AIRSPEED
    assert bound.min_val is None and bound.max_val == 0.9

    with pytest.raises(KeyError):
        bound_for('cabin_temperature')
