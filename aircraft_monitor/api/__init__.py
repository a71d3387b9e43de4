"""
API module for the aircraft monitor.

Provides:
- REST endpoints for current data, status, health, anomaly simulation
  and operator alerts
- Socket.IO transport that feeds observers into the broadcast hub
"""

from aircraft_monitor.api.aircraft import aircraft_bp
from aircraft_monitor.api.websocket import SocketIOSession, socketio

__all__ = ['aircraft_bp', 'SocketIOSession', 'socketio']
