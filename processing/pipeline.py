# processing/pipeline.py

from __future__ import annotations

from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Dict

import numpy as np

from radar.constants import C
from radar.errors import InvalidParameterError
from radar.signal_generator import SimulationParams, resolve_params, generate_pulse_returns
from processing.matched_filter import make_tx_pulse, pulse_compress, range_profile
from processing.doppler_processing import DOPPLER_METHODS, range_doppler_map

from diagnostics.metrics import (
    MetricsRegistry,
    Timer,
    SIMULATION_LATENCY,
    ECHO_SYNTHESIS_LATENCY,
    MATCHED_FILTER_LATENCY,
    DOPPLER_LATENCY,
)


@dataclass(frozen=True)
class SimulationConfig:
    n_range_bins: int
    n_doppler_bins: int
    fs: float     # Hz
    prf: float    # Hz
    fc: float     # Hz

    @property
    def wavelength(self) -> float:
        return C / self.fc

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_range_bins": int(self.n_range_bins),
            "n_doppler_bins": int(self.n_doppler_bins),
            "fs": float(self.fs),
            "prf": float(self.prf),
            "fc": float(self.fc),
        }


@dataclass(frozen=True)
class SimulationResult:
    range_doppler_map: np.ndarray   # (n_range_bins, n_doppler_bins) magnitudes
    range_profile: np.ndarray       # (n_range_bins,) mean matched-filter magnitude
    config: SimulationConfig

    def to_dict(self) -> Dict[str, Any]:
        """Plain lists and floats, ready for json.dumps."""
        return {
            "range_doppler_map": self.range_doppler_map.tolist(),
            "range_profile": self.range_profile.tolist(),
            "config": self.config.to_dict(),
        }


def _stage(metrics: MetricsRegistry | None, key: str):
    return nullcontext() if metrics is None else Timer(metrics, key)


def simulate(
    params: SimulationParams | None = None,
    *,
    rng: np.random.Generator | None = None,
    metrics: MetricsRegistry | None = None,
    doppler_method: str = "dft",
) -> SimulationResult:
    """
    Full radar simulation.

    Steps:
        1. Resolve parameters and derived constants
        2. Synthesize per-pulse echoes with complex Gaussian noise
        3. Matched filter each pulse, average magnitudes into a range profile
        4. Slow-time DFT per range bin into a range-Doppler map

    Optional:
        - rng: noise source; pass a seeded numpy Generator for repeatable runs
        - metrics: records total and per-stage latency
        - doppler_method: "dft" (direct) or "fft"

    Raises:
        SimulationError (InvalidParameterError for bad parameters)
    """
    if doppler_method not in DOPPLER_METHODS:
        raise InvalidParameterError(
            f"doppler_method must be one of {DOPPLER_METHODS}, got {doppler_method!r}"
        )
    if rng is None:
        rng = np.random.default_rng()

    with _stage(metrics, SIMULATION_LATENCY):
        resolved = resolve_params(params)

        with _stage(metrics, ECHO_SYNTHESIS_LATENCY):
            pulse_returns = generate_pulse_returns(resolved, rng)

        with _stage(metrics, MATCHED_FILTER_LATENCY):
            tx_pulse = make_tx_pulse(resolved.pulse_len, resolved.n_fast)
            mf_mag = pulse_compress(pulse_returns, tx_pulse, resolved.n_range_bins)
            profile = range_profile(mf_mag)

        with _stage(metrics, DOPPLER_LATENCY):
            rd_map = range_doppler_map(resolved, rng, method=doppler_method)

    config = SimulationConfig(
        n_range_bins=resolved.n_range_bins,
        n_doppler_bins=resolved.n_doppler_bins,
        fs=resolved.fs,
        prf=resolved.prf,
        fc=resolved.fc,
    )
    return SimulationResult(range_doppler_map=rd_map, range_profile=profile, config=config)
