# radar/signal_generator.py

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from radar.constants import (
    C,
    DEFAULT_FC,
    DEFAULT_FS,
    DEFAULT_NOISE_SIGMA,
    DEFAULT_NUM_PULSES,
    DEFAULT_PRF,
    DEFAULT_PULSE_WIDTH,
)
from radar.errors import InvalidParameterError


@dataclass(frozen=True)
class Target:
    range_m: float            # meters
    vel_m_s: float            # m/s, positive = moving away from the radar
    rcs: float = 1.0          # amplitude scaling (unitless)


DEFAULT_TARGETS: Tuple[Target, ...] = (
    Target(range_m=10_000.0, vel_m_s=30.0, rcs=1.0),
    Target(range_m=15_000.0, vel_m_s=-50.0, rcs=0.6),
)


@dataclass(frozen=True)
class SimulationParams:
    """Sparse parameter set. Any field left as None takes its default."""

    fc: Optional[float] = None            # carrier frequency (Hz)
    fs: Optional[float] = None            # sampling rate (Hz)
    prf: Optional[float] = None           # pulse repetition frequency (Hz)
    num_pulses: Optional[int] = None
    pulse_width: Optional[float] = None   # seconds
    noise_sigma: Optional[float] = None   # per I/Q component
    targets: Optional[Sequence[Target]] = None


@dataclass(frozen=True)
class ResolvedParams:
    fc: float
    fs: float
    prf: float
    num_pulses: int
    pulse_width: float
    noise_sigma: float
    targets: Tuple[Target, ...]

    # Derived constants
    wavelength: float                     # m
    pri: float                            # s
    n_fast: int                           # fast-time samples per PRI
    pulse_len: int                        # samples
    delay_samples: Tuple[int, ...]        # per target, >= 0
    doppler_hz: Tuple[float, ...]         # per target

    @property
    def n_range_bins(self) -> int:
        return max(1, self.n_fast - self.pulse_len + 1)

    @property
    def n_doppler_bins(self) -> int:
        return self.num_pulses

    @property
    def pulse_start_times(self) -> np.ndarray:
        """Absolute start time of every pulse, shape (num_pulses,)."""
        return np.arange(self.num_pulses, dtype=float) * self.pri


# -----------------------------
# Validation helpers
# -----------------------------
def _finite(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidParameterError(f"{name} must be finite, got {value}")
    return value


def _positive(name: str, value: Any) -> float:
    value = _finite(name, value)
    if value <= 0.0:
        raise InvalidParameterError(f"{name} must be > 0, got {value}")
    return value


def _pulse_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidParameterError(f"num_pulses must be an integer, got {value!r}")
    if value < 1:
        raise InvalidParameterError(f"num_pulses must be >= 1, got {value}")
    return int(value)


def _noise_sigma(value: Any) -> float:
    value = _finite("noise_sigma", value)
    if value < 0.0:
        raise InvalidParameterError(f"noise_sigma must be >= 0, got {value}")
    return value


def _check_target(i: int, tgt: Target) -> Target:
    if not isinstance(tgt, Target):
        raise InvalidParameterError(f"targets[{i}] must be a Target, got {type(tgt).__name__}")
    return Target(
        range_m=_finite(f"targets[{i}].range_m", tgt.range_m),
        vel_m_s=_finite(f"targets[{i}].vel_m_s", tgt.vel_m_s),
        rcs=_finite(f"targets[{i}].rcs", tgt.rcs),
    )


def _round_half_away(x: float) -> int:
    magnitude = abs(x)
    whole = math.floor(magnitude)
    # compare the exact fraction; floor(x + 0.5) rounds 0.49999999999999994 up
    if magnitude - whole >= 0.5:
        whole += 1
    return int(math.copysign(whole, x))


def resolve_params(params: SimulationParams | None = None) -> ResolvedParams:
    """
    Fill unset parameters with defaults and derive the secondary constants.

    Raises InvalidParameterError for values the synthesizer cannot use.
    """
    if params is None:
        params = SimulationParams()

    fc = _positive("fc", DEFAULT_FC if params.fc is None else params.fc)
    fs = _positive("fs", DEFAULT_FS if params.fs is None else params.fs)
    prf = _positive("prf", DEFAULT_PRF if params.prf is None else params.prf)
    pulse_width = _positive(
        "pulse_width", DEFAULT_PULSE_WIDTH if params.pulse_width is None else params.pulse_width
    )
    num_pulses = _pulse_count(DEFAULT_NUM_PULSES if params.num_pulses is None else params.num_pulses)
    noise_sigma = _noise_sigma(
        DEFAULT_NOISE_SIGMA if params.noise_sigma is None else params.noise_sigma
    )

    raw_targets = DEFAULT_TARGETS if params.targets is None else params.targets
    targets = tuple(_check_target(i, tgt) for i, tgt in enumerate(raw_targets))

    wavelength = C / fc
    pri = 1.0 / prf
    n_fast = int(pri * fs)
    pulse_len = max(1, int(pulse_width * fs))

    delay_samples = []
    doppler_hz = []
    for tgt in targets:
        tau = 2.0 * tgt.range_m / C
        delay_samples.append(max(0, _round_half_away(tau * fs)))
        doppler_hz.append(2.0 * tgt.vel_m_s / wavelength)

    return ResolvedParams(
        fc=fc,
        fs=fs,
        prf=prf,
        num_pulses=num_pulses,
        pulse_width=pulse_width,
        noise_sigma=noise_sigma,
        targets=targets,
        wavelength=wavelength,
        pri=pri,
        n_fast=n_fast,
        pulse_len=pulse_len,
        delay_samples=tuple(delay_samples),
        doppler_hz=tuple(doppler_hz),
    )


# -----------------------------
# Config dictionaries
# -----------------------------
_PARAM_KEYS = ("fc", "fs", "prf", "num_pulses", "pulse_width", "noise_sigma", "targets")
_TARGET_KEYS = ("range_m", "vel_m_s", "rcs")


def target_from_config(config: Dict[str, Any]) -> Target:
    if not isinstance(config, dict):
        raise InvalidParameterError(f"target must be an object, got {config!r}")
    missing = [k for k in _TARGET_KEYS if k not in config]
    if missing:
        raise InvalidParameterError(f"target is missing fields: {', '.join(missing)}")
    return Target(
        range_m=_finite("range_m", config["range_m"]),
        vel_m_s=_finite("vel_m_s", config["vel_m_s"]),
        rcs=_finite("rcs", config["rcs"]),
    )


def params_from_config(config: Dict[str, Any] | None) -> SimulationParams:
    """
    Build SimulationParams from a JSON-style dictionary.

    Missing keys and null values both mean "use the default".
    """
    if config is None:
        return SimulationParams()
    if not isinstance(config, dict):
        raise InvalidParameterError(f"simulation parameters must be an object, got {config!r}")

    unknown = sorted(set(config) - set(_PARAM_KEYS))
    if unknown:
        raise InvalidParameterError(f"unknown simulation parameters: {', '.join(unknown)}")

    targets = config.get("targets")
    if targets is not None:
        if not isinstance(targets, (list, tuple)):
            raise InvalidParameterError("targets must be a list")
        targets = tuple(target_from_config(t) for t in targets)

    return SimulationParams(
        fc=config.get("fc"),
        fs=config.get("fs"),
        prf=config.get("prf"),
        num_pulses=config.get("num_pulses"),
        pulse_width=config.get("pulse_width"),
        noise_sigma=config.get("noise_sigma"),
        targets=targets,
    )


# -----------------------------
# Echo synthesis
# -----------------------------
def generate_complex_noise(shape, sigma: float, rng: np.random.Generator) -> np.ndarray:
    """
    Complex Gaussian noise whose real and imaginary parts are independent
    N(0, sigma) draws.
    """
    return rng.normal(0.0, sigma, shape) + 1j * rng.normal(0.0, sigma, shape)


def synthesize_pulse(resolved: ResolvedParams,
                     pulse_index: int,
                     rng: np.random.Generator) -> np.ndarray:
    """
    Fast-time receive buffer for one pulse.

    Each target contributes a unit rectangular echo starting at its delay,
    phased by its Doppler shift at absolute time t0 + idx / fs. Echo samples
    that fall past the receive window are dropped.

    Returns:
        rx: complex ndarray, shape (n_fast,)
    """
    n_fast = resolved.n_fast
    fs = resolved.fs
    t0 = pulse_index * resolved.pri

    rx = np.zeros(n_fast, dtype=np.complex128)

    for tgt, delay, fd in zip(resolved.targets, resolved.delay_samples, resolved.doppler_hz):
        stop = min(delay + resolved.pulse_len, n_fast)
        if stop <= delay:
            continue
        idx = np.arange(delay, stop, dtype=float)
        t_abs = t0 + idx / fs
        rx[delay:stop] += tgt.rcs * np.exp(1j * 2.0 * np.pi * fd * t_abs)

    rx += generate_complex_noise(n_fast, resolved.noise_sigma, rng)
    return rx


def generate_pulse_returns(resolved: ResolvedParams,
                           rng: np.random.Generator | None = None) -> np.ndarray:
    """
    Synthesize every pulse of the coherent processing interval.

    Returns:
        returns: complex ndarray, shape (num_pulses, n_fast)
    """
    if rng is None:
        rng = np.random.default_rng()

    pulses = [synthesize_pulse(resolved, p, rng) for p in range(resolved.num_pulses)]
    return np.stack(pulses, axis=0)
