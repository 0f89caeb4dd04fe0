import numpy as np
import pytest

from radar.constants import C
from radar.signal_generator import SimulationParams, Target, resolve_params
from processing.doppler_processing import (
    doppler_bin_to_velocity,
    doppler_dft,
    range_doppler_map,
    slow_time_sequences,
)


def test_direct_dft_matches_fft():
    rng = np.random.default_rng(3)
    slow_time = rng.standard_normal((10, 32)) + 1j * rng.standard_normal((10, 32))

    direct = doppler_dft(slow_time, method="dft")
    fast = doppler_dft(slow_time, method="fft")

    assert direct.shape == (10, 32)
    np.testing.assert_allclose(direct, fast, atol=1e-9)


def test_unsupported_method():
    with pytest.raises(ValueError):
        doppler_dft(np.zeros((2, 4), dtype=complex), method="chirp-z")


def test_doppler_peak_location():
    """
    A slow-time tone at an exact bin frequency must peak at that bin
    (natural order, no fftshift).
    """
    num_pulses = 32
    prf = 1000.0
    doppler_bin = 5

    t_slow = np.arange(num_pulses) / prf
    doppler_freq = doppler_bin * prf / num_pulses
    slow_time = np.exp(1j * 2 * np.pi * doppler_freq * t_slow)[None, :]

    magnitude = np.abs(doppler_dft(slow_time))
    assert np.argmax(magnitude[0]) == doppler_bin
    assert magnitude[0, doppler_bin] == pytest.approx(num_pulses)


def test_slow_time_without_noise_has_target_amplitude():
    resolved = resolve_params(SimulationParams(
        noise_sigma=0.0,
        num_pulses=8,
        targets=[Target(range_m=5000.0, vel_m_s=2.0, rcs=0.4)],
    ))
    slow_time = slow_time_sequences(resolved, np.random.default_rng(0))

    assert slow_time.shape == (resolved.n_range_bins, 8)
    np.testing.assert_allclose(np.abs(slow_time), 0.4)


def test_every_range_bin_sees_every_target():
    resolved = resolve_params(SimulationParams(
        noise_sigma=0.0,
        targets=[Target(range_m=1000.0, vel_m_s=0.0, rcs=1.0),
                 Target(range_m=9000.0, vel_m_s=0.0, rcs=0.5)],
    ))
    rd_map = range_doppler_map(resolved, np.random.default_rng(0))

    # stationary targets add coherently in Doppler bin 0 of every row
    np.testing.assert_allclose(rd_map[:, 0], 1.5 * resolved.num_pulses)


def test_range_doppler_map_shape_and_sign():
    resolved = resolve_params(SimulationParams(num_pulses=16))
    rd_map = range_doppler_map(resolved, np.random.default_rng(5))

    assert rd_map.shape == (resolved.n_range_bins, 16)
    assert rd_map.dtype == float
    assert np.all(rd_map >= 0)


def test_slow_time_noise_is_one_percent():
    resolved = resolve_params(SimulationParams(noise_sigma=1.0, targets=[]))
    slow_time = slow_time_sequences(resolved, np.random.default_rng(11))

    assert np.std(slow_time.real) == pytest.approx(0.01, rel=0.05)


def test_bin_centre_outside_window_skips_targets():
    resolved = resolve_params(SimulationParams(noise_sigma=0.0, pulse_width=0.01))
    assert resolved.n_range_bins == 1
    assert resolved.pulse_len // 2 >= resolved.n_fast

    slow_time = slow_time_sequences(resolved, np.random.default_rng(0))
    assert np.all(slow_time == 0)


def test_doppler_bin_to_velocity():
    prf = 500.0
    n = 32
    wavelength = C / 10e9
    dv = prf / n * wavelength / 2.0

    v = doppler_bin_to_velocity(np.array([0, 1, n // 2, n - 1]), prf, n, wavelength)

    np.testing.assert_allclose(v, [0.0, dv, -(n // 2) * dv, -dv])


def test_doppler_bin_to_velocity_matches_fftfreq_odd():
    prf = 300.0
    n = 5
    v = doppler_bin_to_velocity(np.arange(n), prf, n, 2.0)

    np.testing.assert_allclose(v, np.fft.fftfreq(n, d=1.0 / prf))
