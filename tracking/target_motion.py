# tracking/target_motion.py

from __future__ import annotations

from dataclasses import replace
import logging
import threading
from typing import Callable, List, Optional, Sequence

from analysis.threat import TargetPosition

logger = logging.getLogger(__name__)

MIN_RANGE_M = 1_000.0
MAX_RANGE_M = 50_000.0
AZIMUTH_RATE_DEG_S = 5.0

DEMO_TARGETS = (
    TargetPosition(id=0, range_m=10_000.0, azimuth_deg=0.0, vel_m_s=30.0, rcs=1.0),
    TargetPosition(id=1, range_m=15_000.0, azimuth_deg=120.0, vel_m_s=-50.0, rcs=0.6),
    TargetPosition(id=2, range_m=8_000.0, azimuth_deg=240.0, vel_m_s=25.0, rcs=0.8),
)


def advance(
    position: TargetPosition,
    dt: float,
    azimuth_rate_deg_s: float = AZIMUTH_RATE_DEG_S,
    min_range_m: float = MIN_RANGE_M,
    max_range_m: float = MAX_RANGE_M,
) -> TargetPosition:
    """
    Move a demo target forward by dt seconds.

    Range follows the radial velocity (positive = away), azimuth sweeps at a
    constant rate. A target leaving [min_range_m, max_range_m] is clamped to
    the boundary and its velocity reversed.
    """
    range_m = position.range_m + position.vel_m_s * dt
    vel_m_s = position.vel_m_s
    azimuth_deg = (position.azimuth_deg + azimuth_rate_deg_s * dt) % 360.0

    if range_m < min_range_m:
        range_m = min_range_m
        vel_m_s = -vel_m_s
    elif range_m > max_range_m:
        range_m = max_range_m
        vel_m_s = -vel_m_s

    return replace(position, range_m=range_m, azimuth_deg=azimuth_deg, vel_m_s=vel_m_s)


class DemoTargetTracker:
    """
    Timer-driven demo: advances a fixed set of targets every interval_s and
    hands the new positions to on_update.

    step() can be driven manually; start()/stop() run it on a daemon thread.
    """

    def __init__(
        self,
        targets: Optional[Sequence[TargetPosition]] = None,
        interval_s: float = 0.1,
        on_update: Optional[Callable[[List[TargetPosition]], None]] = None,
    ):
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {interval_s}")
        self.interval_s = float(interval_s)
        self.on_update = on_update

        self._positions: List[TargetPosition] = list(DEMO_TARGETS if targets is None else targets)
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def positions(self) -> List[TargetPosition]:
        with self._lock:
            return list(self._positions)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def step(self, dt: float | None = None) -> List[TargetPosition]:
        dt = self.interval_s if dt is None else float(dt)
        with self._lock:
            self._positions = [advance(p, dt) for p in self._positions]
            positions = list(self._positions)

        if self.on_update is not None:
            self.on_update(positions)
        return positions

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="demo-target-tracker", daemon=True)
        self._thread.start()
        logger.info(f"Demo tracking started with {len(self._positions)} targets")

    def stop(self, timeout: float | None = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Demo tracking stopped")

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            try:
                self.step()
            except Exception:
                # a consumer that can no longer receive updates ends the demo
                logger.exception("Demo tracking update failed, stopping")
                self._stop.set()
