"""
Snapshot model - one point-in-time telemetry reading.

A snapshot is created by the generator with every metric populated and its
anomaly flags cleared, annotated in place by the classifier, then handed to
the broadcast hub and the snapshot cache.

Design notes:
- Metrics are grouped by subsystem (engine, fuel, hydraulic, flight, cabin,
  electrical) to mirror how the safety envelopes are organized
- system_status is derived from the flags, never stored, so it cannot
  disagree with them
- to_dict() produces the flattened camelCase wire representation
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple


class Subsystem(str, Enum):
    """
    Anomaly groups that carry their own flag.

    Altitude and airspeed are flight-data groups rather than physical
    subsystems, but they are classified and injected the same way.
    """
    ENGINE = 'engine'
    FUEL = 'fuel'
    HYDRAULIC = 'hydraulic'
    ALTITUDE = 'altitude'
    AIRSPEED = 'airspeed'


class SystemStatus(str, Enum):
    """Aggregate status of a snapshot."""
    NORMAL = 'NORMAL'
    WARNING = 'WARNING'


# Marker reported by status endpoints before the first snapshot exists
UNKNOWN_STATUS = 'UNKNOWN'


# Python attribute -> wire field name
WIRE_FIELDS: Tuple[Tuple[str, str], ...] = (
    ('engine_rpm', 'engineRPM'),
    ('engine_temperature', 'engineTemperature'),
    ('oil_pressure', 'oilPressure'),
    ('oil_temperature', 'oilTemperature'),
    ('fuel_level', 'fuelLevel'),
    ('fuel_consumption', 'fuelConsumption'),
    ('fuel_pressure', 'fuelPressure'),
    ('fuel_temperature', 'fuelTemperature'),
    ('hydraulic_pressure', 'hydraulicPressure'),
    ('hydraulic_temperature', 'hydraulicTemperature'),
    ('hydraulic_fluid_level', 'hydraulicFluidLevel'),
    ('altitude', 'altitude'),
    ('airspeed', 'airspeed'),
    ('ground_speed', 'groundSpeed'),
    ('mach_number', 'machNumber'),
    ('vertical_speed', 'verticalSpeed'),
    ('cabin_pressure', 'cabinPressure'),
    ('cabin_temperature', 'cabinTemperature'),
    ('battery_voltage', 'batteryVoltage'),
    ('generator_output', 'generatorOutput'),
)

FLAG_FIELDS: Dict[Subsystem, Tuple[str, str]] = {
    Subsystem.ENGINE: ('engine_anomaly', 'engineAnomaly'),
    Subsystem.FUEL: ('fuel_anomaly', 'fuelAnomaly'),
    Subsystem.HYDRAULIC: ('hydraulic_anomaly', 'hydraulicAnomaly'),
    Subsystem.ALTITUDE: ('altitude_anomaly', 'altitudeAnomaly'),
    Subsystem.AIRSPEED: ('airspeed_anomaly', 'airspeedAnomaly'),
}


def _wire_number(value: Optional[float]) -> Optional[float]:
    """Non-finite values are not valid JSON; report them as null."""
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


@dataclass
class Snapshot:
    """
    Fully populated telemetry record across all subsystems.

    Units follow cockpit conventions: feet, knots, feet per minute, PSI,
    degrees Celsius, percent for levels, pounds per hour for consumption.
    """
    timestamp: Optional[datetime] = None

    # Engine
    engine_rpm: float = 0.0
    engine_temperature: float = 0.0
    oil_pressure: float = 0.0
    oil_temperature: float = 0.0

    # Fuel
    fuel_level: float = 0.0
    fuel_consumption: float = 0.0
    fuel_pressure: float = 0.0
    fuel_temperature: float = 0.0

    # Hydraulic
    hydraulic_pressure: float = 0.0
    hydraulic_temperature: float = 0.0
    hydraulic_fluid_level: float = 0.0

    # Flight
    altitude: float = 0.0
    airspeed: float = 0.0
    ground_speed: float = 0.0
    mach_number: float = 0.0
    vertical_speed: float = 0.0

    # Cabin
    cabin_pressure: float = 0.0
    cabin_temperature: float = 0.0

    # Electrical
    battery_voltage: float = 0.0
    generator_output: float = 0.0

    # Anomaly flags (set by the classifier)
    engine_anomaly: bool = False
    fuel_anomaly: bool = False
    hydraulic_anomaly: bool = False
    altitude_anomaly: bool = False
    airspeed_anomaly: bool = False

    def flag(self, subsystem: Subsystem) -> bool:
        return getattr(self, FLAG_FIELDS[subsystem][0])

    def set_flag(self, subsystem: Subsystem, value: bool) -> None:
        setattr(self, FLAG_FIELDS[subsystem][0], bool(value))

    @property
    def flags(self) -> Dict[Subsystem, bool]:
        return {subsystem: self.flag(subsystem) for subsystem in Subsystem}

    def has_any_anomaly(self) -> bool:
        """True if any subsystem flag is set."""
        return (
            self.engine_anomaly or
            self.fuel_anomaly or
            self.hydraulic_anomaly or
            self.altitude_anomaly or
            self.airspeed_anomaly
        )

    @property
    def system_status(self) -> SystemStatus:
        return SystemStatus.WARNING if self.has_any_anomaly() else SystemStatus.NORMAL

    def to_dict(self) -> dict:
        """Flattened, JSON-serializable representation for the wire."""
        result = {
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }
        for attr, wire_name in WIRE_FIELDS:
            result[wire_name] = _wire_number(getattr(self, attr))
        for subsystem, (attr, wire_name) in FLAG_FIELDS.items():
            result[wire_name] = bool(getattr(self, attr))
        result['systemStatus'] = self.system_status.value
        return result

    def __repr__(self) -> str:
        return f'<Snapshot {self.timestamp.isoformat() if self.timestamp else "?"} {self.system_status.value}>'
