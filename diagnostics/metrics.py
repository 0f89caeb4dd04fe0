# diagnostics/metrics.py
from __future__ import annotations

from dataclasses import dataclass
from collections import deque
import threading
import time
from typing import Dict, Any


# -----------------------------
# Metric keys
# -----------------------------
SIMULATIONS_TOTAL = "simulations_total"
SIMULATIONS_SUCCEEDED = "simulations_succeeded"
SIMULATIONS_FAILED = "simulations_failed"
ANALYSES_TOTAL = "analyses_total"
DETECTIONS_TOTAL = "detections_total"

ACTIVE_TRACKERS = "active_trackers"

SIMULATION_LATENCY = "simulation_latency_s"
ECHO_SYNTHESIS_LATENCY = "echo_synthesis_latency_s"
MATCHED_FILTER_LATENCY = "matched_filter_latency_s"
DOPPLER_LATENCY = "doppler_latency_s"


@dataclass
class _TimerStats:
    samples: deque  # of float seconds

    def add(self, x: float, maxlen: int):
        self.samples.append(x)
        while len(self.samples) > maxlen:
            self.samples.popleft()

    def summary(self) -> Dict[str, float]:
        if not self.samples:
            return {"count": 0, "mean_s": 0.0, "p95_s": 0.0, "max_s": 0.0}
        arr = sorted(self.samples)
        n = len(arr)
        return {
            "count": n,
            "mean_s": sum(arr) / n,
            "p95_s": arr[int(0.95 * (n - 1))],
            "max_s": arr[-1],
        }


class MetricsRegistry:
    """
    Small thread-safe metrics registry shared by simulation workers:
      - counters: monotonically increasing
      - gauges: last value (overwrite)
      - timers: sliding-window timings (seconds)
    """

    def __init__(self, window_size: int = 200):
        self.window_size = int(window_size)
        self.start_time = time.monotonic()
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._gauges: Dict[str, float] = {}
        self._timers: Dict[str, _TimerStats] = {}

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + int(amount)

    def set_gauge(self, key: str, value: float) -> None:
        with self._lock:
            self._gauges[key] = float(value)

    def add_gauge(self, key: str, delta: float) -> None:
        with self._lock:
            self._gauges[key] = self._gauges.get(key, 0.0) + float(delta)

    def observe(self, key: str, value_s: float) -> None:
        with self._lock:
            if key not in self._timers:
                self._timers[key] = _TimerStats(samples=deque())
            self._timers[key].add(float(value_s), self.window_size)

    def counter(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    def uptime_s(self) -> float:
        return time.monotonic() - self.start_time

    def success_rate(self) -> float:
        """Fraction of finished simulations that succeeded (1.0 before any ran)."""
        with self._lock:
            ok = self._counters.get(SIMULATIONS_SUCCEEDED, 0)
            failed = self._counters.get(SIMULATIONS_FAILED, 0)
        finished = ok + failed
        return 1.0 if finished == 0 else ok / finished

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "gauges": dict(self._gauges),
                "timers": {k: v.summary() for k, v in self._timers.items()},
                "uptime_s": self.uptime_s(),
            }


class Timer:
    """Context manager for timing blocks into MetricsRegistry timers (seconds)."""

    def __init__(self, metrics: MetricsRegistry, key: str):
        self.metrics = metrics
        self.key = key
        self._t0 = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        dt = time.perf_counter() - self._t0
        self.metrics.observe(self.key, dt)
        return False
