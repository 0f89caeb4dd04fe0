import numpy as np
import pytest

from radar.constants import C
from radar.errors import InvalidParameterError
from radar.signal_generator import (
    DEFAULT_TARGETS,
    SimulationParams,
    Target,
    generate_pulse_returns,
    params_from_config,
    resolve_params,
    _round_half_away,
    synthesize_pulse,
)


def _aligned_range(delay_samples, fs=1e6):
    return delay_samples * C / (2.0 * fs)


def test_resolve_defaults():
    resolved = resolve_params(SimulationParams())

    assert resolved.fc == 10e9
    assert resolved.fs == 1e6
    assert resolved.prf == 500.0
    assert resolved.num_pulses == 32
    assert resolved.noise_sigma == 0.1
    assert resolved.targets == DEFAULT_TARGETS

    assert resolved.wavelength == pytest.approx(C / 10e9)
    assert resolved.pri == pytest.approx(0.002)
    assert resolved.n_fast == 2000
    assert resolved.pulse_len == max(1, int(resolved.pulse_width * resolved.fs))
    assert resolved.n_range_bins == resolved.n_fast - resolved.pulse_len + 1
    assert resolved.n_doppler_bins == 32


def test_resolve_none_is_defaults():
    assert resolve_params(None) == resolve_params(SimulationParams())


def test_default_target_delays_and_doppler():
    resolved = resolve_params()

    # 10 km -> 66.7 samples, 15 km -> 100.07 samples at 1 MHz
    assert resolved.delay_samples == (67, 100)

    np.testing.assert_allclose(
        resolved.doppler_hz,
        [2 * 30.0 / resolved.wavelength, 2 * -50.0 / resolved.wavelength],
    )


def test_negative_range_clamps_delay_to_zero():
    resolved = resolve_params(SimulationParams(targets=[Target(range_m=-500.0, vel_m_s=0.0)]))
    assert resolved.delay_samples == (0,)


@pytest.mark.parametrize("x, expected", [
    (0.49999999999999994, 0),
    (0.5, 1),
    (2.5, 3),
    (-0.5, -1),
    (-2.4, -2),
    (66.71, 67),
    (0.0, 0),
])
def test_delay_rounds_half_away_from_zero(x, expected):
    assert _round_half_away(x) == expected


def test_pulse_len_has_floor_of_one():
    resolved = resolve_params(SimulationParams(pulse_width=1e-9))
    assert resolved.pulse_len == 1
    assert resolved.n_range_bins == resolved.n_fast


def test_pulse_longer_than_pri_keeps_one_range_bin():
    resolved = resolve_params(SimulationParams(pulse_width=0.01))
    assert resolved.pulse_len > resolved.n_fast
    assert resolved.n_range_bins == 1


@pytest.mark.parametrize("overrides", [
    {"noise_sigma": -0.1},
    {"num_pulses": 0},
    {"num_pulses": -3},
    {"num_pulses": 2.5},
    {"num_pulses": True},
    {"fc": 0.0},
    {"fs": -1e6},
    {"prf": float("nan")},
    {"pulse_width": float("inf")},
    {"fc": "10e9"},
])
def test_invalid_parameters_rejected(overrides):
    with pytest.raises(InvalidParameterError):
        resolve_params(SimulationParams(**overrides))


def test_invalid_target_rejected():
    with pytest.raises(InvalidParameterError):
        resolve_params(SimulationParams(targets=[Target(range_m=float("nan"), vel_m_s=0.0)]))


def test_invalid_parameter_error_is_value_error():
    with pytest.raises(ValueError):
        resolve_params(SimulationParams(noise_sigma=-1.0))


def test_params_from_config():
    params = params_from_config({
        "fc": 9e9,
        "num_pulses": 16,
        "noise_sigma": None,
        "targets": [{"range_m": 2000.0, "vel_m_s": -5.0, "rcs": 0.5}],
    })

    assert params.fc == 9e9
    assert params.num_pulses == 16
    assert params.noise_sigma is None
    assert params.targets == (Target(range_m=2000.0, vel_m_s=-5.0, rcs=0.5),)


def test_params_from_config_empty_target_list():
    params = params_from_config({"targets": []})
    assert resolve_params(params).targets == ()


def test_params_from_config_rejects_unknown_keys():
    with pytest.raises(InvalidParameterError, match="bandwidth"):
        params_from_config({"bandwidth": 20e6})


def test_params_from_config_rejects_incomplete_target():
    with pytest.raises(InvalidParameterError, match="rcs"):
        params_from_config({"targets": [{"range_m": 1000.0, "vel_m_s": 0.0}]})


def test_stationary_echo_without_noise():
    delay = 100
    resolved = resolve_params(SimulationParams(
        noise_sigma=0.0,
        targets=[Target(range_m=_aligned_range(delay), vel_m_s=0.0, rcs=0.7)],
    ))
    rx = synthesize_pulse(resolved, 3, np.random.default_rng(0))

    assert rx.shape == (resolved.n_fast,)
    end = delay + resolved.pulse_len
    np.testing.assert_allclose(rx[delay:end], 0.7)
    assert np.all(rx[:delay] == 0)
    assert np.all(rx[end:] == 0)


def test_doppler_phase_follows_absolute_time():
    resolved = resolve_params(SimulationParams(
        noise_sigma=0.0,
        targets=[Target(range_m=_aligned_range(10), vel_m_s=12.0, rcs=1.0)],
    ))
    fd = resolved.doppler_hz[0]
    p = 5
    rx = synthesize_pulse(resolved, p, np.random.default_rng(0))

    idx = 10 + np.arange(resolved.pulse_len)
    expected = np.exp(1j * 2 * np.pi * fd * (p * resolved.pri + idx / resolved.fs))
    np.testing.assert_allclose(rx[idx], expected, atol=1e-9)


def test_targets_superpose():
    t1 = Target(range_m=_aligned_range(100), vel_m_s=0.0, rcs=1.0)
    t2 = Target(range_m=_aligned_range(120), vel_m_s=0.0, rcs=0.5)
    resolved = resolve_params(SimulationParams(noise_sigma=0.0, targets=[t1, t2]))
    rx = synthesize_pulse(resolved, 0, np.random.default_rng(0))

    # overlap region carries both echoes
    np.testing.assert_allclose(rx[120:100 + resolved.pulse_len], 1.5)


def test_echo_beyond_window_contributes_nothing():
    resolved = resolve_params(SimulationParams(
        noise_sigma=0.0,
        targets=[Target(range_m=1.0e6, vel_m_s=10.0, rcs=1.0)],
    ))
    assert resolved.delay_samples[0] >= resolved.n_fast

    rx = synthesize_pulse(resolved, 0, np.random.default_rng(0))
    assert rx.shape == (resolved.n_fast,)
    assert np.all(rx == 0)


def test_echo_truncated_at_window_end():
    delay = resolve_params().n_fast - 10
    resolved = resolve_params(SimulationParams(
        noise_sigma=0.0,
        targets=[Target(range_m=_aligned_range(delay), vel_m_s=0.0, rcs=1.0)],
    ))
    rx = synthesize_pulse(resolved, 0, np.random.default_rng(0))

    assert np.count_nonzero(rx) == 10
    # no wraparound into the start of the buffer
    assert np.all(rx[:resolved.pulse_len] == 0)


def test_generate_pulse_returns_shape_and_noise_level():
    resolved = resolve_params(SimulationParams(noise_sigma=0.2, targets=[]))
    returns = generate_pulse_returns(resolved, np.random.default_rng(123))

    assert returns.shape == (resolved.num_pulses, resolved.n_fast)
    assert returns.dtype == np.complex128
    assert np.std(returns.real) == pytest.approx(0.2, rel=0.05)
    assert np.std(returns.imag) == pytest.approx(0.2, rel=0.05)


def test_noise_is_drawn_fresh_per_pulse():
    resolved = resolve_params(SimulationParams(noise_sigma=0.1, targets=[]))
    returns = generate_pulse_returns(resolved, np.random.default_rng(1))

    assert not np.allclose(returns[0], returns[1])


def test_seeded_generator_repeats():
    resolved = resolve_params()
    a = generate_pulse_returns(resolved, np.random.default_rng(99))
    b = generate_pulse_returns(resolved, np.random.default_rng(99))

    np.testing.assert_array_equal(a, b)
