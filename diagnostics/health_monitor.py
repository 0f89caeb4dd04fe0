# diagnostics/health_monitor.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any, Tuple

from diagnostics.metrics import SIMULATION_LATENCY, SIMULATIONS_SUCCEEDED, SIMULATIONS_FAILED

HEALTHY = "healthy"
DEGRADED = "degraded"


@dataclass
class HealthConfig:
    # Enter/exit thresholds
    latency_mean_ms_enter: float = 5_000.0
    latency_mean_ms_exit: float = 2_000.0

    failure_ratio_enter: float = 0.5
    failure_ratio_exit: float = 0.2

    enter_count_required: int = 3
    exit_count_required: int = 5


class HealthMonitor:
    """
    Hysteresis state machine over metrics snapshots:
      HEALTHY -> DEGRADED when conditions persist for N updates
      DEGRADED -> HEALTHY when conditions relax for M updates

    It evaluates:
      - mean simulation latency (ms) from timer SIMULATION_LATENCY
      - share of failed simulations among finished ones
    """

    def __init__(self, cfg: HealthConfig | None = None):
        self.cfg = cfg or HealthConfig()
        self.state = HEALTHY
        self._enter_streak = 0
        self._exit_streak = 0

    def update(self, snap: Dict[str, Any]) -> Tuple[str, str]:
        timers = snap.get("timers", {})
        counters = snap.get("counters", {})

        lat_ms = 1000.0 * float(timers.get(SIMULATION_LATENCY, {}).get("mean_s", 0.0))

        ok = int(counters.get(SIMULATIONS_SUCCEEDED, 0))
        failed = int(counters.get(SIMULATIONS_FAILED, 0))
        failure_ratio = failed / (ok + failed) if (ok + failed) else 0.0

        should_degrade = (lat_ms >= self.cfg.latency_mean_ms_enter) or (failure_ratio >= self.cfg.failure_ratio_enter)
        should_recover = (lat_ms <= self.cfg.latency_mean_ms_exit) and (failure_ratio <= self.cfg.failure_ratio_exit)

        reason = ""
        if lat_ms >= self.cfg.latency_mean_ms_enter:
            reason += f"lat_ms={lat_ms:.1f} "
        if failure_ratio >= self.cfg.failure_ratio_enter:
            reason += f"failure_ratio={failure_ratio:.2f} "

        if self.state == HEALTHY:
            if should_degrade:
                self._enter_streak += 1
                if self._enter_streak >= self.cfg.enter_count_required:
                    self.state = DEGRADED
                    self._exit_streak = 0
            else:
                self._enter_streak = 0
        else:
            if should_recover:
                self._exit_streak += 1
                if self._exit_streak >= self.cfg.exit_count_required:
                    self.state = HEALTHY
                    self._enter_streak = 0
            else:
                self._exit_streak = 0

        return self.state, reason.strip()
