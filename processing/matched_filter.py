# processing/matched_filter.py

from __future__ import annotations

import numpy as np


def make_tx_pulse(pulse_len: int, n_fast: int | None = None) -> np.ndarray:
    """
    Unit-amplitude rectangular transmit pulse.

    With n_fast given the pulse is cut to the receive window length: no
    pulse sample past n_fast can overlap a buffer of n_fast samples, so the
    correlation is unchanged and memory stays bounded by the window.
    """
    pulse_len = max(1, int(pulse_len))
    if n_fast is not None:
        pulse_len = max(1, min(pulse_len, int(n_fast)))
    return np.ones(pulse_len, dtype=np.complex128)


def matched_filter(rx: np.ndarray, tx_pulse: np.ndarray, n_range_bins: int) -> np.ndarray:
    """
    Correlate one fast-time buffer against the transmit pulse.

        mf[k] = sum_m rx[k + m] * conj(tx[m]),  k = 0 .. n_range_bins - 1

    Samples beyond the end of rx count as zero, so a pulse longer than the
    receive window still yields n_range_bins outputs.

    Returns:
        mf: complex ndarray, shape (n_range_bins,)
    """
    # taps past the end of the buffer only ever meet zeros
    tx_pulse = tx_pulse[:max(1, rx.shape[0])]
    pulse_len = tx_pulse.shape[0]
    needed = n_range_bins + pulse_len - 1

    if rx.shape[0] < needed:
        rx = np.concatenate([rx, np.zeros(needed - rx.shape[0], dtype=rx.dtype)])

    # np.correlate conjugates its second argument
    return np.correlate(rx[:needed], tx_pulse, mode="valid")


def pulse_compress(pulse_returns: np.ndarray,
                   tx_pulse: np.ndarray,
                   n_range_bins: int) -> np.ndarray:
    """
    Matched-filter every pulse and keep the magnitudes.

    Parameters:
        pulse_returns: shape (num_pulses, n_fast)

    Returns:
        mf_mag: float ndarray, shape (n_range_bins, num_pulses)
    """
    num_pulses = pulse_returns.shape[0]
    mf_mag = np.zeros((n_range_bins, num_pulses), dtype=float)

    for p in range(num_pulses):
        mf_mag[:, p] = np.abs(matched_filter(pulse_returns[p], tx_pulse, n_range_bins))

    return mf_mag


def range_profile(mf_mag: np.ndarray) -> np.ndarray:
    """Mean matched-filter magnitude per range bin, averaged over pulses."""
    return mf_mag.mean(axis=1)
