# processing/doppler_processing.py

import numpy as np

from radar.constants import DOPPLER_NOISE_SCALE
from radar.signal_generator import ResolvedParams, generate_complex_noise

DOPPLER_METHODS = ("dft", "fft")


def slow_time_sequences(resolved: ResolvedParams, rng: np.random.Generator) -> np.ndarray:
    """
    Build one slow-time sequence per range bin.

    The target phase is evaluated at the bin-centre fast-time sample
    (r + pulse_len // 2). Every target contributes to every bin: there is no
    range gating here, only in the matched-filter range profile. A target is
    skipped for bins whose centre sample lies outside the receive window.

    Returns:
        slow_time: complex ndarray, shape (n_range_bins, num_pulses)
    """
    n_range_bins = resolved.n_range_bins
    num_pulses = resolved.num_pulses

    center_idx = np.arange(n_range_bins) + resolved.pulse_len // 2
    in_window = (center_idx < resolved.n_fast)[:, None]

    # t[r, p] = t0[p] + centre[r] / fs
    t_abs = resolved.pulse_start_times[None, :] + center_idx[:, None] / resolved.fs

    slow_time = np.zeros((n_range_bins, num_pulses), dtype=np.complex128)
    for tgt, fd in zip(resolved.targets, resolved.doppler_hz):
        echo = tgt.rcs * np.exp(1j * 2.0 * np.pi * fd * t_abs)
        slow_time += np.where(in_window, echo, 0.0)

    noise = generate_complex_noise((n_range_bins, num_pulses), resolved.noise_sigma, rng)
    return slow_time + DOPPLER_NOISE_SCALE * noise


def dft_matrix(n: int) -> np.ndarray:
    """W[k, n] = exp(-i 2 pi k n / N)."""
    k = np.arange(n)
    return np.exp(-2j * np.pi * np.outer(k, k) / n)


def doppler_dft(slow_time: np.ndarray, method: str = "dft") -> np.ndarray:
    """
    Transform slow-time sequences into Doppler spectra along the last axis.

    method="dft" evaluates the direct O(N^2) sum; method="fft" uses
    numpy.fft. Output bins are in natural order (bin 0 = zero Doppler).

    Returns:
        spectrum: complex ndarray, same shape as slow_time
    """
    if method == "dft":
        n = slow_time.shape[-1]
        return slow_time @ dft_matrix(n).T
    if method == "fft":
        return np.fft.fft(slow_time, axis=-1)
    raise ValueError(f"Unsupported Doppler transform: {method}")


def range_doppler_map(resolved: ResolvedParams,
                      rng: np.random.Generator,
                      method: str = "dft") -> np.ndarray:
    """
    Range-Doppler magnitude map.

    Returns:
        rd_map: float ndarray, shape (n_range_bins, num_pulses)
    """
    slow_time = slow_time_sequences(resolved, rng)
    return np.abs(doppler_dft(slow_time, method=method))


def doppler_bin_to_velocity(doppler_bins,
                            prf: float,
                            n_doppler_bins: int,
                            wavelength: float) -> np.ndarray:
    """
    Radial velocity (m/s) at the centre of natural-order Doppler bins.

    Bins from ceil(N/2) upward map to negative frequencies, in the same order
    numpy.fft.fftfreq uses.
    """
    doppler_bins = np.asarray(doppler_bins, dtype=float)
    signed_bins = np.where(doppler_bins >= (n_doppler_bins + 1) // 2,
                           doppler_bins - n_doppler_bins,
                           doppler_bins)
    doppler_hz = signed_bins * prf / n_doppler_bins
    return doppler_hz * wavelength / 2.0
