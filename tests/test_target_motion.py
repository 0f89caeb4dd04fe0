import threading

import pytest

from analysis.threat import TargetPosition
from tracking.target_motion import DEMO_TARGETS, DemoTargetTracker, advance


def _pos(**kw):
    base = dict(id=0, range_m=10_000.0, azimuth_deg=0.0, vel_m_s=30.0, rcs=1.0)
    base.update(kw)
    return TargetPosition(**base)


def test_advance_moves_range_and_azimuth():
    p = advance(_pos(), 0.1)

    assert p.range_m == pytest.approx(10_003.0)
    assert p.azimuth_deg == pytest.approx(0.5)
    assert p.vel_m_s == 30.0
    assert p.id == 0


def test_advance_returns_new_object():
    original = _pos()
    advance(original, 1.0)
    assert original.range_m == 10_000.0


def test_azimuth_wraps():
    p = advance(_pos(azimuth_deg=359.8), 0.1)
    assert p.azimuth_deg == pytest.approx(0.3)


def test_bounce_at_minimum_range():
    p = advance(_pos(range_m=1_002.0, vel_m_s=-50.0), 0.1)

    assert p.range_m == 1_000.0
    assert p.vel_m_s == 50.0


def test_bounce_at_maximum_range():
    p = advance(_pos(range_m=49_999.0, vel_m_s=25.0), 0.1)

    assert p.range_m == 50_000.0
    assert p.vel_m_s == -25.0


def test_tracker_step_advances_all_targets():
    seen = []
    tracker = DemoTargetTracker(interval_s=0.1, on_update=seen.append)

    positions = tracker.step()

    assert len(positions) == len(DEMO_TARGETS)
    for before, after in zip(DEMO_TARGETS, positions):
        assert after.range_m == pytest.approx(before.range_m + before.vel_m_s * 0.1)
    assert seen == [positions]
    assert tracker.positions == positions


def test_tracker_rejects_bad_interval():
    with pytest.raises(ValueError):
        DemoTargetTracker(interval_s=0.0)


def test_tracker_thread_delivers_updates():
    got_three = threading.Event()
    updates = []

    def on_update(positions):
        updates.append(positions)
        if len(updates) >= 3:
            got_three.set()

    tracker = DemoTargetTracker(targets=[_pos()], interval_s=0.01, on_update=on_update)
    tracker.start()
    try:
        assert got_three.wait(timeout=5.0)
        assert tracker.running
    finally:
        tracker.stop()

    assert not tracker.running
    assert updates[1][0].range_m > updates[0][0].range_m


def test_tracker_stops_when_callback_fails():
    failed = threading.Event()

    def on_update(positions):
        failed.set()
        raise ConnectionError("client gone")

    tracker = DemoTargetTracker(targets=[_pos()], interval_s=0.01, on_update=on_update)
    tracker.start()
    assert failed.wait(timeout=5.0)
    tracker._thread.join(timeout=5.0)

    assert not tracker.running
    tracker.stop()
