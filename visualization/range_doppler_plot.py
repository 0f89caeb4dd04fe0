# visualization/range_doppler_plot.py

from __future__ import annotations

from typing import Sequence

import numpy as np
import matplotlib.pyplot as plt

from radar.constants import C
from processing.doppler_processing import doppler_bin_to_velocity


class RangeDopplerPlot:
    """
    Range profile and range-Doppler map of a simulation result with
    physical axes.

    The map is stored [range][doppler] with Doppler bins in natural DFT
    order. For display it is transposed and fftshifted so that:

    - x axis: Range (m)
    - y axis: Velocity (m/s), zero in the middle
    """

    def __init__(
        self,
        n_range_bins: int,
        n_doppler_bins: int,
        fs: float = 1.0e6,
        prf: float = 500.0,
        fc: float = 10.0e9,
        dB_scale: bool = True,
        dynamic_range_dB: float = 60,
        live: bool = False,
    ):
        self.n_range_bins = int(n_range_bins)
        self.n_doppler_bins = int(n_doppler_bins)
        self.fs = float(fs)
        self.prf = float(prf)
        self.wavelength = C / float(fc)
        self.dB_scale = bool(dB_scale)
        self.dynamic_range_dB = float(dynamic_range_dB)
        self.live = bool(live)

        # one range bin = one fast-time sample of round-trip delay
        self.range_resolution = C / (2.0 * self.fs)
        self.range_axis_m = np.arange(self.n_range_bins, dtype=float) * self.range_resolution

        doppler_freqs = np.fft.fftshift(np.fft.fftfreq(self.n_doppler_bins, d=1.0 / self.prf))
        self.velocity_axis_mps = doppler_freqs * self.wavelength / 2.0

        # extent = [xmin, xmax, ymin, ymax] at bin edges
        dv = float(self.prf / self.n_doppler_bins * self.wavelength / 2.0)
        self.extent = [
            -0.5 * self.range_resolution,
            (self.n_range_bins - 0.5) * self.range_resolution,
            float(self.velocity_axis_mps[0] - dv / 2.0),
            float(self.velocity_axis_mps[-1] + dv / 2.0),
        ]

        self.fig, (self.ax_profile, self.ax_map) = plt.subplots(2, 1, figsize=(10, 8))
        self.profile_line = None
        self.im = None
        self.scatter = None

        if self.live:
            plt.ion()

    @classmethod
    def from_result(cls, result, **kwargs) -> "RangeDopplerPlot":
        cfg = result.config
        return cls(
            n_range_bins=cfg.n_range_bins,
            n_doppler_bins=cfg.n_doppler_bins,
            fs=cfg.fs,
            prf=cfg.prf,
            fc=cfg.fc,
            **kwargs,
        )

    def _to_display_db(self, magnitude: np.ndarray) -> np.ndarray:
        eps = 1e-12
        display = 20.0 * np.log10(np.asarray(magnitude, dtype=float) + eps)

        # Normalize relative to peak, clip to dynamic range
        display = display - float(np.max(display))
        return np.clip(display, -self.dynamic_range_dB, 0.0)

    def bins_to_physical(self, range_bins, doppler_bins) -> tuple[np.ndarray, np.ndarray]:
        """
        Convert bin indices (natural-order Doppler) to range in metres and
        radial velocity in m/s.
        """
        range_m = np.asarray(range_bins, dtype=float) * self.range_resolution
        vel_mps = doppler_bin_to_velocity(doppler_bins, self.prf, self.n_doppler_bins, self.wavelength)
        return range_m, vel_mps

    def update(self, result, detections: Sequence | None = None, title: str = "Range-Doppler Map"):
        """
        Redraw from a SimulationResult. detections are objects with
        range_m and velocity_m_s attributes (see processing.detection).
        """
        profile = result.range_profile
        rd_map = np.fft.fftshift(result.range_doppler_map, axes=1).T

        if self.dB_scale:
            profile = self._to_display_db(profile)
            rd_map = self._to_display_db(rd_map)

        if self.im is None:
            (self.profile_line,) = self.ax_profile.plot(self.range_axis_m, profile, lw=1.0)
            self.ax_profile.set_xlabel("Range (m)")
            self.ax_profile.set_ylabel("Magnitude (dB)" if self.dB_scale else "Magnitude")
            self.ax_profile.set_title("Range Profile")

            self.im = self.ax_map.imshow(
                rd_map,
                aspect="auto",
                origin="lower",
                extent=self.extent,
                cmap="jet",
                vmin=-self.dynamic_range_dB if self.dB_scale else None,
                vmax=0.0 if self.dB_scale else None,
                interpolation="nearest",
            )
            self.fig.colorbar(self.im, ax=self.ax_map, label="Magnitude (dB)" if self.dB_scale else "Magnitude")

            self.scatter = self.ax_map.scatter(
                [], [],
                marker="o",
                facecolors="none",
                edgecolors="white",
                linewidths=1.5,
            )
        else:
            self.profile_line.set_ydata(profile)
            self.im.set_data(rd_map)

        if detections:
            offsets = np.array([[d.range_m, d.velocity_m_s] for d in detections], dtype=float)
            self.scatter.set_offsets(offsets)
        else:
            self.scatter.set_offsets(np.empty((0, 2)))

        self.ax_map.set_title(title)
        self.ax_map.set_xlabel("Range (m)")
        self.ax_map.set_ylabel("Velocity (m/s)")

        self.fig.canvas.draw_idle()
        if self.live:
            plt.pause(0.001)

    def close(self):
        if self.live:
            plt.ioff()
        plt.close(self.fig)
