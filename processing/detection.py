# processing/detection.py

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import numpy as np
from scipy import ndimage
from scipy.signal import find_peaks

from radar.constants import C
from processing.doppler_processing import doppler_bin_to_velocity


@dataclass(frozen=True)
class Detection:
    range_bin: int
    doppler_bin: int
    range_m: float
    velocity_m_s: float
    magnitude: float


def cfar_2d(
    power_map: np.ndarray,
    guard_cells=(1, 1),
    training_cells=(4, 4),
    pfa=1e-3
) -> np.ndarray:
    """
    2D Cell-Averaging CFAR detector over a range-Doppler map.

    Parameters:
        power_map: 2D power (or magnitude) map, shape (range, Doppler)
        guard_cells: (g_r, g_d)
        training_cells: (t_r, t_d)
        pfa: Probability of false alarm

    The Doppler axis is circular, so its edges are evaluated with wrapped
    neighbours. Range edges without a full training window never detect.

    Returns:
        detections: Boolean array same shape as power_map
    """
    num_rows, _ = power_map.shape
    g_r, g_d = guard_cells
    t_r, t_d = training_cells

    outer = (2 * (t_r + g_r) + 1, 2 * (t_d + g_d) + 1)
    inner = (2 * g_r + 1, 2 * g_d + 1)
    num_train = outer[0] * outer[1] - inner[0] * inner[1]

    # CA-CFAR threshold scaling factor
    alpha = num_train * (pfa ** (-1 / num_train) - 1)

    power_map = np.asarray(power_map, dtype=float)
    modes = ("nearest", "wrap")
    outer_sum = ndimage.uniform_filter(power_map, size=outer, mode=modes) * (outer[0] * outer[1])
    inner_sum = ndimage.uniform_filter(power_map, size=inner, mode=modes) * (inner[0] * inner[1])
    noise_level = (outer_sum - inner_sum) / num_train

    detections = power_map > alpha * noise_level

    margin = t_r + g_r
    detections[:margin, :] = False
    detections[max(num_rows - margin, 0):, :] = False
    return detections


def suppress_to_local_max(detections: np.ndarray,
                          magnitude_map: np.ndarray) -> np.ndarray:
    """
    Reduce clustered detections to a single local maximum per cluster.

    Returns:
        pruned_detections: boolean array with one True per cluster
    """
    labeled_array, num_features = ndimage.label(detections)

    pruned = np.zeros_like(detections, dtype=bool)
    if num_features == 0:
        return pruned

    peaks = ndimage.maximum_position(magnitude_map, labeled_array, index=np.arange(1, num_features + 1))
    for peak in peaks:
        pruned[peak] = True

    return pruned


@dataclass(frozen=True)
class DopplerLine:
    doppler_bin: int
    velocity_m_s: float
    magnitude: float


def detect_doppler_lines(result,
                         guard_cells: int = 1,
                         training_cells: int = 4,
                         pfa: float = 1e-3) -> List[DopplerLine]:
    """
    Velocities present anywhere in the scene.

    Every row of the range-Doppler map carries every target, so the rows are
    averaged into a single Doppler spectrum first. CA-CFAR then runs along
    the circular Doppler axis only, and each cluster of hits is reduced to
    its strongest bin.
    """
    cfg = result.config
    spectrum = np.mean(result.range_doppler_map, axis=0, keepdims=True)

    hits = cfar_2d(
        spectrum,
        guard_cells=(0, guard_cells),
        training_cells=(0, training_cells),
        pfa=pfa,
    )
    peaks = suppress_to_local_max(hits, spectrum)

    lines = []
    for d in np.flatnonzero(peaks[0]):
        velocity = doppler_bin_to_velocity(int(d), cfg.prf, cfg.n_doppler_bins, cfg.wavelength)
        lines.append(DopplerLine(
            doppler_bin=int(d),
            velocity_m_s=float(velocity),
            magnitude=float(spectrum[0, d]),
        ))
    return lines


def detect_range_peaks(range_profile: np.ndarray,
                       threshold_factor: float = 6.0,
                       min_separation: int = 1) -> np.ndarray:
    """
    Range bins whose profile value is a local peak above
    threshold_factor * median(profile).

    The median stands in for the noise floor, which holds as long as
    targets occupy a minority of the range bins.
    """
    range_profile = np.asarray(range_profile, dtype=float)
    floor = float(np.median(range_profile))
    height = threshold_factor * floor
    if height <= 0.0:
        # noise-free profile: anything above zero is signal
        height = np.finfo(float).tiny

    peaks, _ = find_peaks(range_profile, height=height, distance=max(1, int(min_separation)))
    return peaks


def detect_targets(result,
                   threshold_factor: float = 6.0,
                   min_separation: int = 1) -> List[Detection]:
    """
    Detections from a SimulationResult: range from the range profile,
    Doppler from the strongest bin of the map row at that range.

    The range-Doppler map is not range-gated, so in a multi-target scene the
    Doppler bin reported for the weaker target can belong to the stronger one.
    """
    cfg = result.config
    range_resolution = C / (2.0 * cfg.fs)

    detections = []
    for r in detect_range_peaks(result.range_profile, threshold_factor, min_separation):
        d = int(np.argmax(result.range_doppler_map[r]))
        velocity = doppler_bin_to_velocity(d, cfg.prf, cfg.n_doppler_bins, cfg.wavelength)
        detections.append(Detection(
            range_bin=int(r),
            doppler_bin=d,
            range_m=float(r * range_resolution),
            velocity_m_s=float(velocity),
            magnitude=float(result.range_profile[r]),
        ))
    return detections
