# service/simulation_runner.py

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import concurrent.futures
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from analysis.threat import (
    DroneAnalysis,
    TargetPosition,
    classify,
    target_position_from_config,
    validate_target_position,
)
from diagnostics.health_monitor import HealthMonitor, HealthConfig
from diagnostics.metrics import (
    MetricsRegistry,
    ACTIVE_TRACKERS,
    ANALYSES_TOTAL,
    SIMULATIONS_FAILED,
    SIMULATIONS_SUCCEEDED,
    SIMULATIONS_TOTAL,
)
from processing.pipeline import SimulationResult, simulate
from radar.errors import InvalidParameterError, SimulationError, SimulationTimeoutError
from radar.signal_generator import SimulationParams, params_from_config
from service.config import RunnerConfig, VERSION
from tracking.target_motion import DemoTargetTracker

logger = logging.getLogger(__name__)


class SimulationRunner:
    """
    Runs the simulation kernel on a worker pool so callers on a
    latency-sensitive thread never block on the numerics.

    Each run gets its own random generator; with config.seed set the
    generators are spawned from one SeedSequence so a sequence of runs is
    reproducible.
    """

    def __init__(self,
                 config: RunnerConfig | None = None,
                 metrics: MetricsRegistry | None = None,
                 health_config: HealthConfig | None = None):
        self.config = config or RunnerConfig.from_env()
        self.metrics = metrics or MetricsRegistry()
        self.health_monitor = HealthMonitor(health_config)

        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="radar-sim",
        )
        self._seed_lock = threading.Lock()
        self._seed_seq = None if self.config.seed is None else np.random.SeedSequence(self.config.seed)
        self._trackers: List[DemoTargetTracker] = []

    # -----------------------------
    # Simulation
    # -----------------------------
    def _next_rng(self) -> np.random.Generator:
        if self._seed_seq is None:
            return np.random.default_rng()
        with self._seed_lock:
            child = self._seed_seq.spawn(1)[0]
        return np.random.default_rng(child)

    def _simulate(self, params, rng: np.random.Generator) -> SimulationResult:
        try:
            if not isinstance(params, SimulationParams):
                params = params_from_config(params)
            result = simulate(params, rng=rng, metrics=self.metrics)
        except SimulationError as e:
            self.metrics.inc(SIMULATIONS_FAILED)
            logger.warning(f"Simulation rejected: {e}")
            raise
        except Exception:
            self.metrics.inc(SIMULATIONS_FAILED)
            logger.exception("Simulation failed")
            raise

        self.metrics.inc(SIMULATIONS_SUCCEEDED)
        logger.info(
            f"Simulation completed: {result.config.n_range_bins} range bins x "
            f"{result.config.n_doppler_bins} Doppler bins"
        )
        return result

    def submit(self, params: SimulationParams | Dict[str, Any] | None = None) -> Future:
        """
        Queue a simulation. Parameter errors surface when the future's
        result is read.
        """
        self.metrics.inc(SIMULATIONS_TOTAL)
        return self._executor.submit(self._simulate, params, self._next_rng())

    def run(self, params: SimulationParams | Dict[str, Any] | None = None) -> SimulationResult:
        """
        Submit and wait up to config.timeout_s. A timeout abandons the
        result; the worker itself keeps running until the kernel returns.
        """
        future = self.submit(params)
        try:
            return future.result(timeout=self.config.timeout_s)
        except concurrent.futures.TimeoutError as e:
            logger.error(f"Simulation exceeded {self.config.timeout_s}s")
            raise SimulationTimeoutError(
                f"simulation did not finish within {self.config.timeout_s}s"
            ) from e

    # -----------------------------
    # Analysis
    # -----------------------------
    def analyze(self, target: TargetPosition | Dict[str, Any]) -> DroneAnalysis:
        if isinstance(target, dict):
            target = target_position_from_config(target)
        elif not isinstance(target, TargetPosition):
            raise InvalidParameterError(
                f"target must be an object with position fields, got {type(target).__name__}"
            )
        validate_target_position(target)

        logger.info(f"Analyzing target: id={target.id}, range={target.range_m}m")
        future = self._executor.submit(classify, target)
        try:
            analysis = future.result(timeout=self.config.timeout_s)
        except concurrent.futures.TimeoutError as e:
            raise SimulationTimeoutError(
                f"analysis did not finish within {self.config.timeout_s}s"
            ) from e

        self.metrics.inc(ANALYSES_TOTAL)
        return analysis

    # -----------------------------
    # Message handling
    # -----------------------------
    def handle_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Answer one JSON-style request:
            {"type": "simulate", "params": {...}}
            {"type": "analyze", "drone_id": 1, "target": {...}}
        """
        kind = message.get("type") if isinstance(message, dict) else None

        if kind == "simulate":
            try:
                result = self.run(message.get("params"))
            except SimulationError as e:
                return {"type": "error", "message": str(e)}
            return {"type": "result", **result.to_dict()}

        if kind == "analyze":
            target = message.get("target")
            if isinstance(target, dict) and "id" not in target and "drone_id" in message:
                target = {**target, "id": message["drone_id"]}
            try:
                if target is None:
                    raise InvalidParameterError("analyze message has no target")
                analysis = self.analyze(target)
            except SimulationError as e:
                logger.warning(f"Analysis rejected: {e}")
                return {"type": "analysis_error", "message": str(e)}
            return {"type": "analysis_result", "analysis": analysis.to_dict()}

        return {"type": "error", "message": f"Invalid message type: {kind!r}"}

    # -----------------------------
    # Demo tracking
    # -----------------------------
    def start_tracking(self,
                       on_update: Callable[[List[TargetPosition]], None],
                       targets: Optional[List[TargetPosition]] = None) -> DemoTargetTracker:
        tracker = DemoTargetTracker(
            targets=targets,
            interval_s=self.config.track_interval_s,
            on_update=on_update,
        )
        tracker.start()
        self._trackers.append(tracker)
        self.metrics.add_gauge(ACTIVE_TRACKERS, 1)
        return tracker

    def stop_tracking(self, tracker: DemoTargetTracker) -> None:
        if tracker in self._trackers:
            tracker.stop()
            self._trackers.remove(tracker)
            self.metrics.add_gauge(ACTIVE_TRACKERS, -1)

    # -----------------------------
    # Observability
    # -----------------------------
    def metrics_snapshot(self) -> Dict[str, Any]:
        snap = self.metrics.snapshot()
        snap["success_rate"] = self.metrics.success_rate()
        return snap

    def health(self) -> Dict[str, Any]:
        state, reason = self.health_monitor.update(self.metrics.snapshot())
        if reason:
            logger.warning(f"Health check: {state} ({reason})")
        return {
            "status": state,
            "version": VERSION,
            "uptime_seconds": int(self.metrics.uptime_s()),
            "checks": {
                "simulation": state,
                "analysis": "ok",
                "tracking": "running" if any(t.running for t in self._trackers) else "idle",
            },
        }

    # -----------------------------
    # Lifecycle
    # -----------------------------
    def shutdown(self, wait: bool = True) -> None:
        for tracker in list(self._trackers):
            self.stop_tracking(tracker)
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False
