"""
Telemetry pipeline - orchestrates one tick of the monitor.

Each tick runs these stages in order:
1. Advance: count down active anomaly injections
2. Generate: draw a synthetic snapshot, forcing injected subsystems
3. Classify: annotate the snapshot against the safety envelopes
4. Store: make it the current snapshot for status queries
5. Broadcast: push it to every connected observer

The pipeline can run as a background thread firing one tick per fixed
period. A failure inside a scheduled tick is logged and counted, and the
loop carries on with the next period. Calling generate() or
generate_and_broadcast() directly runs the same stages without that
isolation, so errors reach the caller.
"""

import logging
import threading
import time
from typing import Optional, Union

from aircraft_monitor.analytics import classify
from aircraft_monitor.cache import SnapshotCache
from aircraft_monitor.config import config
from aircraft_monitor.models.snapshot import Snapshot, Subsystem
from aircraft_monitor.services.broadcast import BroadcastHub
from aircraft_monitor.simulation.generator import TelemetryGenerator
from aircraft_monitor.simulation.injection import InjectionController

logger = logging.getLogger(__name__)


class TelemetryPipeline:
    """
    Manages the generate -> classify -> broadcast lifecycle.

    Owns the current-snapshot cache; everything else is injected so tests
    can swap in their own hub, generator or controller.
    """

    def __init__(
        self,
        hub: BroadcastHub,
        generator: Optional[TelemetryGenerator] = None,
        injection: Optional[InjectionController] = None,
        cache: Optional[SnapshotCache] = None,
        interval: Optional[float] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            hub: Broadcast hub that receives every classified snapshot
            generator: Snapshot source (seeded from config if None)
            injection: Anomaly injection controller (created if None)
            cache: Current-snapshot cell (created if None)
            interval: Seconds between scheduled ticks
        """
        self.hub = hub
        self.generator = generator or TelemetryGenerator(seed=config.simulation.seed)
        self.injection = injection or InjectionController()
        self.cache = cache or SnapshotCache()
        self.interval = interval or config.simulation.tick_interval

        # Serializes generate/classify between the scheduler and direct callers
        self._tick_lock = threading.Lock()
        # Guards the counters below, which direct callers and the loop both update
        self._stats_lock = threading.Lock()

        # State tracking
        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_tick_time: float = 0
        self._tick_count: int = 0
        self._error_count: int = 0

    # -------------------------------------------------------------------------
    # On-demand operations (errors propagate)
    # -------------------------------------------------------------------------

    def generate(self) -> Snapshot:
        """
        Run stages 1-4 and return the classified snapshot.

        Does not broadcast. Exceptions from the generator or classifier
        propagate to the caller.
        """
        with self._tick_lock:
            forced = self.injection.tick()
            snapshot = self.generator.produce(forced)
            classify(snapshot)
            self.cache.set(snapshot)

        if snapshot.has_any_anomaly():
            logger.info(f'Snapshot {snapshot.system_status.value}: {snapshot.flags}')
        return snapshot

    def generate_and_broadcast(self) -> Snapshot:
        """Execute one full tick. Exceptions propagate to the caller."""
        snapshot = self.generate()
        delivered = self.hub.broadcast_snapshot(snapshot)

        with self._stats_lock:
            self._last_tick_time = time.time()
            self._tick_count += 1
            tick = self._tick_count
        logger.debug(f'Tick {tick}: delivered to {delivered} session(s)')
        return snapshot

    def request_injection(self, subsystem: Union[Subsystem, str]) -> None:
        """Force a subsystem out of envelope for the next ticks."""
        self.injection.request(subsystem)

    # -------------------------------------------------------------------------
    # Scheduled operation (errors isolated per tick)
    # -------------------------------------------------------------------------

    def _run_scheduled_tick(self) -> Optional[Snapshot]:
        """Execute one tick, logging instead of raising on failure."""
        try:
            return self.generate_and_broadcast()
        except Exception as e:
            with self._stats_lock:
                self._error_count += 1
            logger.error(f'Telemetry tick failed: {e}', exc_info=config.debug)
            return None

    def run_continuous(self, interval: Optional[float] = None) -> None:
        """
        Run ticks at a fixed rate until stop() is called.

        This method blocks - use start_background() for non-blocking.
        """
        interval = interval or self.interval
        self._running = True
        self._stop_event.clear()

        logger.info(f'Starting telemetry generation (interval={interval}s)')

        next_run = time.monotonic()
        while not self._stop_event.is_set():
            self._run_scheduled_tick()

            next_run += interval
            delay = next_run - time.monotonic()
            if delay < 0:
                # Overran the period; skip ahead instead of bursting
                logger.warning(f'Tick overran its {interval}s period by {-delay:.2f}s')
                next_run = time.monotonic()
                delay = 0
            self._stop_event.wait(delay)

        self._running = False
        logger.info('Telemetry generation stopped')

    def start_background(self, interval: Optional[float] = None) -> None:
        """Start the tick loop in a background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('Telemetry generation already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_continuous,
            args=(interval,),
            name='telemetry-pipeline',
            daemon=True,
        )
        self._thread.start()
        logger.info('Background telemetry generation started')

    def stop(self) -> None:
        """Stop background generation."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
        self._running = False

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    @property
    def current_snapshot(self) -> Optional[Snapshot]:
        return self.cache.get()

    @property
    def data_generation_active(self) -> bool:
        """True once at least one snapshot has been generated."""
        return self.cache.has_data

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        """Get pipeline statistics."""
        with self._stats_lock:
            counters = {
                'tick_count': self._tick_count,
                'error_count': self._error_count,
                'last_tick_time': self._last_tick_time,
            }
        return {
            **counters,
            'interval': self.interval,
            'running': self._running,
            'active_injections': self.injection.stats,
        }
