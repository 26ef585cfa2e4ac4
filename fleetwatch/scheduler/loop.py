"""
Tick Scheduler — the simulation's heartbeat.

Owns the only mutable reference to the current Snapshot. Each tick reads
the previous snapshot, calls the pure ``Simulation.advance`` and commits
the result before notifying subscribers.

States:
  STOPPED → RUNNING → (tick, wait period)* → STOPPED

Stopping between ticks is always safe: the last committed snapshot stays
valid. At most one tick is in flight at any time.
"""

import asyncio
import logging
import random
import time
from typing import Callable, List, Optional

from fleetwatch.entities.state_machine import OverrideResult
from fleetwatch.models.config import SimulationConfig
from fleetwatch.models.snapshot import Snapshot
from fleetwatch.simulation.engine import Simulation

logger = logging.getLogger(__name__)

Subscriber = Callable[[Snapshot], None]


class TickInProgressError(Exception):
    """Raised when a tick or override is started while another tick runs."""
    pass


class SimulatedClock:
    """Simulated time: the n-th call returns ``start + n * period``."""

    def __init__(self, period: float, start: float = 0.0):
        self.period = period
        self.start = start
        self._ticks = 0

    def __call__(self) -> float:
        self._ticks += 1
        return self.start + self._ticks * self.period


class MonotonicClock:
    """Wall-clock seconds since construction."""

    def __init__(self):
        self._origin = time.monotonic()

    def __call__(self) -> float:
        return time.monotonic() - self._origin


class TickScheduler:
    """Drives a Simulation at a fixed period."""

    def __init__(
        self,
        config: SimulationConfig,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], float]] = None,
        initial: Optional[Snapshot] = None,
    ):
        self.config = config
        self.simulation = Simulation(config)
        self.rng = rng or random.Random(config.seed)

        self._snapshot = initial or self.simulation.initial(now=0.0)
        # Simulated time resumes from the first snapshot
        self.clock = clock or SimulatedClock(config.tick_period, start=self._snapshot.time)
        self._subscribers: List[Subscriber] = []
        self._running = False
        self._in_flight = False

    @property
    def snapshot(self) -> Snapshot:
        """The last committed snapshot."""
        return self._snapshot

    @property
    def status(self) -> str:
        return "running" if self._running else "stopped"

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback invoked with every committed snapshot."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def tick(self) -> Snapshot:
        """
        Run a single tick, commit its snapshot and notify subscribers.

        The tick stays in flight until every subscriber has been called, so
        a subscriber that starts another tick or override gets
        TickInProgressError.
        """
        if self._in_flight:
            raise TickInProgressError("A tick is already in flight")

        self._in_flight = True
        try:
            now = self.clock()
            self._snapshot = self.simulation.advance(self._snapshot, self.rng, now)
            self._notify(self._snapshot)
        finally:
            self._in_flight = False
        return self._snapshot

    def run(self, ticks: int) -> Snapshot:
        """Run ``ticks`` ticks back to back; returns the last snapshot."""
        for _ in range(ticks):
            self.tick()
        return self._snapshot

    def override(self, entity_id: str, target_state: str) -> OverrideResult:
        """
        Manually move an entity (e.g. force it into maintenance).

        Raises EntityNotFoundError for an unknown id. A rejected override
        leaves the snapshot untouched.
        """
        if self._in_flight:
            raise TickInProgressError("Cannot override while a tick is in flight")

        self._in_flight = True
        try:
            updated, result = self.simulation.override(
                self._snapshot, entity_id, target_state, self.rng
            )
            if result.accepted:
                self._snapshot = updated
                self._notify(updated)
        finally:
            self._in_flight = False
        return result

    def _notify(self, snapshot: Snapshot) -> None:
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Snapshot subscriber %r failed", callback)

    async def run_async(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Tick every ``tick_period`` seconds until ``stop_event`` is set."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()
        logger.info(
            "Scheduler for %s started (period %.2fs)",
            self.config.name, self.config.tick_period,
        )

        try:
            while not stop_event.is_set():
                self.tick()
                try:
                    await asyncio.wait_for(
                        stop_event.wait(),
                        timeout=self.config.tick_period,
                    )
                except asyncio.TimeoutError:
                    continue
        finally:
            self._running = False
            logger.info(
                "Scheduler for %s stopped at tick %d",
                self.config.name, self._snapshot.tick,
            )
