"""
Aircraft Monitor Package.

Real-time aircraft telemetry monitor built with Flask, Flask-SocketIO and NumPy.

Modules:
    api/         REST endpoints and Socket.IO observer transport
    models/      Snapshot model and the wire message kinds
    simulation/  Telemetry generator, anomaly injection and the tick pipeline
    analytics/   Safety envelopes and NumPy-based anomaly classification
    services/    Broadcast hub fanning messages out to observers
    cache.py     Thread-safe holder for the current snapshot
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
