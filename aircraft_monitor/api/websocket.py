"""
Real-time observer transport over Socket.IO.

Each Socket.IO connection is wrapped in a SocketIOSession so the broadcast
hub only ever sees the minimal session interface (id, is_open, send).
Frames are JSON text delivered as plain `message` events.

Events handled:
- connect: register with the hub (which sends the greeting)
- disconnect: remove from the hub
- message, json: echo the content back through the hub
"""

import json
import logging
import threading
from typing import Dict, Optional

from flask import current_app, request
from flask_socketio import SocketIO

logger = logging.getLogger(__name__)

socketio = SocketIO()


class SocketIOSession:
    """Session adapter for one Socket.IO client."""

    def __init__(self, server: SocketIO, sid: str, namespace: str = '/'):
        self.id = sid
        self.namespace = namespace
        self._server = server
        self._open = True

    def is_open(self) -> bool:
        return self._open

    def send(self, data: str) -> None:
        self._server.send(data, to=self.id, namespace=self.namespace)

    def close(self) -> None:
        self._open = False

    def __repr__(self) -> str:
        return f'<SocketIOSession {self.id} {"open" if self._open else "closed"}>'


# sid -> adapter for clients connected to this process
_sessions: Dict[str, SocketIOSession] = {}
_sessions_lock = threading.Lock()


def get_session(sid: str) -> Optional[SocketIOSession]:
    with _sessions_lock:
        return _sessions.get(sid)


def _hub():
    return current_app.config['BROADCAST_HUB']


@socketio.on('connect')
def handle_connect(auth=None):
    session = SocketIOSession(socketio, request.sid)
    with _sessions_lock:
        _sessions[session.id] = session

    _hub().connect(session)


@socketio.on('disconnect')
def handle_disconnect(*args):
    with _sessions_lock:
        session = _sessions.pop(request.sid, None)
    if session is None:
        return

    session.close()
    reason = str(args[0]) if args else 'client disconnected'
    _hub().disconnect(session, reason)


@socketio.on('json')
@socketio.on('message')
def handle_message(data):
    session = get_session(request.sid)
    if session is None:
        logger.warning(f'Message from unregistered client {request.sid}')
        session = SocketIOSession(socketio, request.sid)

    # Structured payloads arrive already decoded; echo their JSON text
    if isinstance(data, (dict, list)):
        data = json.dumps(data, separators=(',', ':'))
    elif data is None:
        data = ''

    _hub().echo(session, data)
