"""
Observer-facing services.

Handles fan-out to connected observers with per-session fault isolation
and graceful degradation when individual connections fail.
"""

from aircraft_monitor.services.broadcast import BroadcastHub, Session

__all__ = ['BroadcastHub', 'Session']
