"""
Telemetry simulation module.

Generates synthetic aircraft readings, applies operator-requested anomaly
injection, and drives the periodic generate/classify/broadcast loop.
"""

from aircraft_monitor.simulation.generator import TelemetryGenerator, compute_mach
from aircraft_monitor.simulation.injection import InjectionController, parse_subsystem
from aircraft_monitor.simulation.pipeline import TelemetryPipeline

__all__ = [
    'TelemetryGenerator',
    'compute_mach',
    'InjectionController',
    'parse_subsystem',
    'TelemetryPipeline',
]
