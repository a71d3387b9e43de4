"""
Configuration management for the aircraft monitor.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic numbers scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _parse_seed(value: str) -> Optional[int]:
    """Parse an integer seed, or None if empty/invalid."""
    if not value:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class SimulationConfig:
    """Telemetry generation settings."""
    tick_interval: float = float(os.getenv('TICK_INTERVAL_SECONDS', '2'))

    # Ticks an operator-requested injection stays active
    anomaly_duration_ticks: int = int(os.getenv('ANOMALY_DURATION_TICKS', '10'))

    # Fixed seed for reproducible telemetry (None = fresh entropy)
    seed: Optional[int] = _parse_seed(os.getenv('SIMULATION_SEED', ''))


@dataclass(frozen=True)
class BroadcastConfig:
    """Observer fan-out settings."""
    send_timeout_seconds: float = float(os.getenv('SEND_TIMEOUT_SECONDS', '5'))
    socket_path: str = os.getenv('SOCKET_PATH', '/websocket')


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    simulation: SimulationConfig
    broadcast: BroadcastConfig

    # Flask settings
    secret_key: str
    debug: bool
    port: int


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        simulation=SimulationConfig(),
        broadcast=BroadcastConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
        port=int(os.getenv('PORT', '5000')),
    )


# Singleton instance
config = load_config()
