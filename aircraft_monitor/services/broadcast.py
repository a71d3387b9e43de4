"""
Broadcast hub - fans messages out to every connected observer.

Handles:
- Session registry (connect/disconnect) safe under concurrent access
- Snapshot, alert, custom and echo delivery
- Self-healing: a session that is closed, raises, or stalls on send is
  evicted without affecting other sessions or the caller

Concurrency model:
The registry is guarded by a lock that is only held long enough to copy or
mutate the dict. Every registered session owns an outbound queue drained by
its own sender thread, so frames to one session keep their order and a hung
send only ever holds that session's thread. A broadcast pass takes a
point-in-time copy of the registry, queues the frame for each session, then
waits until every frame is either delivered, failed, or stuck behind a send
that has been running longer than send_timeout. The timeout is measured from
when a send starts, never from when it was queued. Failures are collected
during the pass and evictions applied afterwards, so the registry is never
mutated while being iterated.

Sessions only need to satisfy the Session protocol below; the transport
adapter (Socket.IO) lives in the api package.
"""

import logging
import queue
import threading
import time
from concurrent.futures import CancelledError, FIRST_COMPLETED, Future, wait
from typing import Any, Dict, List, Optional, Protocol, Tuple

from aircraft_monitor.config import config
from aircraft_monitor.exceptions import DeliveryError, InvalidInputError, SerializationError
from aircraft_monitor.models.messages import (
    AlertMessage,
    ConnectionMessage,
    CustomMessage,
    EchoMessage,
    Message,
    SnapshotMessage,
    encode,
)
from aircraft_monitor.models.snapshot import Snapshot

logger = logging.getLogger(__name__)

# Upper bound on how long a pass sleeps between stall checks
STALL_CHECK_INTERVAL = 0.05


class Session(Protocol):
    """Capability interface every observer connection must provide."""

    @property
    def id(self) -> str: ...

    def is_open(self) -> bool: ...

    def send(self, data: str) -> None:
        """Deliver one text frame; raise on failure."""
        ...


class _Registration:
    """
    A registered session plus its outbound queue and sender thread.

    Frames are sent one at a time, in submission order. Closing the
    registration cancels queued frames and lets the thread exit once the
    in-flight send (if any) returns.
    """

    def __init__(self, session: Session):
        self.session = session
        self.session_id = str(session.id)
        self.connected_at = time.time()

        self._queue: 'queue.Queue[Optional[Tuple[str, Future]]]' = queue.Queue()
        self._state_lock = threading.Lock()
        self._closed = False
        self._send_started: Optional[float] = None

        self._thread = threading.Thread(
            target=self._run,
            name=f'session-sender-{self.session_id}',
            daemon=True,
        )
        self._thread.start()

    def submit(self, payload: str) -> Future:
        """Queue one frame; the returned future settles when it is sent or fails."""
        future: Future = Future()
        with self._state_lock:
            if not self._closed:
                self._queue.put((payload, future))
                return future
        future.set_exception(DeliveryError(self.session_id, 'session closed'))
        return future

    def stalled_for(self, now: float) -> float:
        """Seconds the in-flight send has been running, 0 when idle."""
        started = self._send_started
        return 0.0 if started is None else now - started

    def close(self) -> None:
        """Stop accepting frames and cancel everything still queued."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True

        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is not None:
                item[1].cancel()
        self._queue.put(None)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the sender thread to exit. Returns True if it did."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                return
            payload, future = item
            if not future.set_running_or_notify_cancel():
                continue

            self._send_started = time.monotonic()
            try:
                self._send(payload)
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(None)
            finally:
                self._send_started = None

    def _send(self, payload: str) -> None:
        """Send one frame, normalizing every failure to DeliveryError."""
        try:
            is_open = self.session.is_open()
        except Exception as e:
            raise DeliveryError(self.session_id, f'open check failed: {e}') from e
        if not is_open:
            raise DeliveryError(self.session_id, 'session closed')

        try:
            self.session.send(payload)
        except DeliveryError:
            raise
        except Exception as e:
            raise DeliveryError(self.session_id, str(e) or type(e).__name__) from e


class BroadcastHub:
    """
    Registry of live sessions with fault-isolated fan-out.

    None of the broadcast methods raise on delivery or encoding problems;
    they log, evict or drop, and return the number of sessions reached.
    """

    def __init__(self, send_timeout: Optional[float] = None):
        self.send_timeout = send_timeout or config.broadcast.send_timeout_seconds
        self._sessions: Dict[str, _Registration] = {}
        self._lock = threading.RLock()

        # Statistics
        self._messages_sent = 0
        self._evictions = 0
        self._dropped = 0

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def connect(self, session: Session) -> None:
        """
        Register a session and greet it with a connection message.

        The greeting is sent before returning. If it fails the session stays
        registered; the failure is picked up by the next broadcast.
        """
        if session is None:
            raise InvalidInputError('session is required')

        registration = _Registration(session)
        with self._lock:
            replaced = self._sessions.get(registration.session_id)
            self._sessions[registration.session_id] = registration
            count = len(self._sessions)

        if replaced is not None:
            replaced.close()
            logger.info(f'Session {registration.session_id} re-registered ({count} connected)')
        else:
            logger.info(f'Session {registration.session_id} connected ({count} connected)')

        payload = self._encode(ConnectionMessage())
        if payload is None:
            return
        for reg, error in self._deliver(payload, [registration]):
            logger.warning(f'Connection greeting to {reg.session_id} failed: {error}')

    def disconnect(self, session: Session, reason: Optional[str] = None) -> bool:
        """
        Remove a session. Idempotent.

        Returns True if the session was registered.
        """
        if session is None:
            raise InvalidInputError('session is required')

        session_id = str(session.id)
        with self._lock:
            removed = self._sessions.pop(session_id, None)
            count = len(self._sessions)

        if removed is None:
            return False

        removed.close()
        logger.info(f'Session {session_id} disconnected: {reason or "closed"} ({count} connected)')
        return True

    def connected_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    # -------------------------------------------------------------------------
    # Broadcasts
    # -------------------------------------------------------------------------

    def broadcast_snapshot(self, snapshot: Snapshot) -> int:
        """Push an aircraft_data message to every live session."""
        if snapshot is None:
            raise InvalidInputError('snapshot is required')
        return self._broadcast(SnapshotMessage(snapshot))

    def broadcast_alert(
        self,
        alert_type: Optional[str],
        message: Optional[str],
        severity: Optional[str],
    ) -> int:
        """Push an operator alert; any field may be None or empty."""
        return self._broadcast(AlertMessage(alert_type, message, severity))

    def broadcast_custom(self, tag: str, payload: Any) -> int:
        """
        Push a caller-defined {type: tag, data: payload} envelope.

        A payload that cannot be encoded is dropped and logged; nobody is
        evicted for it.
        """
        if tag is None:
            raise InvalidInputError('message type is required')
        return self._broadcast(CustomMessage(str(tag), payload))

    def echo(self, session: Session, content: str) -> bool:
        """
        Reply to a session with the content it just sent.

        Shares the per-session send path, so a failed echo evicts the
        session. Returns True if delivered.
        """
        if session is None:
            raise InvalidInputError('session is required')
        if content is None:
            raise InvalidInputError('message content is required')

        payload = self._encode(EchoMessage(content if isinstance(content, str) else str(content)))
        if payload is None:
            return False

        with self._lock:
            registration = self._sessions.get(str(session.id))

        temporary = registration is None or registration.session is not session
        if temporary:
            registration = _Registration(session)

        try:
            failures = self._deliver(payload, [registration])
        finally:
            if temporary:
                registration.close()

        for reg, error in failures:
            self._evict(reg, error)
        return not failures

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _encode(self, message: Message) -> Optional[str]:
        """Encode, or log and drop the message."""
        try:
            return encode(message)
        except SerializationError as e:
            with self._lock:
                self._dropped += 1
            logger.error(f'Dropping {type(message).__name__}: {e}')
            return None

    def _broadcast(self, message: Message) -> int:
        payload = self._encode(message)
        if payload is None:
            return 0

        # Point-in-time view; sessions added during the pass wait for the next one
        with self._lock:
            registrations = list(self._sessions.values())

        if not registrations:
            logger.debug(f'No sessions connected, skipping {type(message).__name__}')
            return 0

        failures = self._deliver(payload, registrations)
        for reg, error in failures:
            self._evict(reg, error)

        return len(registrations) - len(failures)

    def _deliver(
        self,
        payload: str,
        registrations: List[_Registration],
    ) -> List[Tuple[_Registration, Exception]]:
        """
        Queue payload on each registration and wait for the outcome.

        A frame counts as failed once its session's current send has been
        running longer than send_timeout. Frames still waiting on a healthy
        sender are never timed out.

        Returns (registration, error) pairs for every failed or stalled send.
        """
        pending = {reg.submit(payload): reg for reg in registrations}
        failures: List[Tuple[_Registration, Exception]] = []
        delivered = 0

        while pending:
            done, _ = wait(
                pending,
                timeout=min(self.send_timeout, STALL_CHECK_INTERVAL),
                return_when=FIRST_COMPLETED,
            )

            for future in done:
                reg = pending.pop(future)
                try:
                    future.result()
                except CancelledError:
                    failures.append((reg, DeliveryError(reg.session_id, 'session closed')))
                except Exception as e:
                    failures.append((reg, e))
                else:
                    delivered += 1

            now = time.monotonic()
            for future, reg in list(pending.items()):
                stalled = reg.stalled_for(now)
                if stalled > self.send_timeout:
                    del pending[future]
                    failures.append((reg, DeliveryError(
                        reg.session_id,
                        f'send stalled for {stalled:.2f}s (timeout {self.send_timeout}s)',
                    )))

        with self._lock:
            self._messages_sent += delivered

        return failures

    def _evict(self, registration: _Registration, error: Exception) -> bool:
        """Remove a failed registration unless it was already removed or replaced."""
        with self._lock:
            if self._sessions.get(registration.session_id) is not registration:
                return False
            del self._sessions[registration.session_id]
            self._evictions += 1
            count = len(self._sessions)

        registration.close()
        logger.warning(f'Evicted session {registration.session_id}: {error} ({count} connected)')
        return True

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Drop all sessions and stop their sender threads.

        Waits at most timeout seconds (send_timeout by default) in total
        for in-flight sends to return.
        """
        with self._lock:
            registrations = list(self._sessions.values())
            self._sessions.clear()

        for reg in registrations:
            reg.close()

        deadline = time.monotonic() + (self.send_timeout if timeout is None else timeout)
        stuck = [
            reg.session_id for reg in registrations
            if not reg.join(max(0.0, deadline - time.monotonic()))
        ]
        if stuck:
            logger.warning(f'Sender threads still busy on close: {stuck}')
        logger.info('Broadcast hub closed')

    @property
    def stats(self) -> dict:
        """Get hub statistics."""
        with self._lock:
            return {
                'connected': len(self._sessions),
                'messages_sent': self._messages_sent,
                'evictions': self._evictions,
                'dropped': self._dropped,
                'send_timeout_seconds': self.send_timeout,
            }
