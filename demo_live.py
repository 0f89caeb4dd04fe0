import logging
import threading

from diagnostics.metrics import DETECTIONS_TOTAL
from processing.detection import detect_targets
from radar.signal_generator import SimulationParams, Target
from service.config import RunnerConfig, configure_logging
from service.simulation_runner import SimulationRunner
from visualization.range_doppler_plot import RangeDopplerPlot

logger = logging.getLogger("demo_live")

NUM_FRAMES = 50

config = RunnerConfig.from_env()
configure_logging(config.log_level)

latest = {}
frame_ready = threading.Event()


def on_positions(positions):
    # runs on the tracker thread; the main loop picks up the newest set
    latest["positions"] = positions
    frame_ready.set()


with SimulationRunner(config) as runner:
    tracker = runner.start_tracking(on_positions)
    plotter = None

    for frame in range(NUM_FRAMES):
        if not frame_ready.wait(timeout=5.0):
            logger.error("No position update from tracker")
            break
        frame_ready.clear()
        positions = latest["positions"]

        params = SimulationParams(
            noise_sigma=0.05,
            targets=[Target(range_m=p.range_m, vel_m_s=p.vel_m_s, rcs=p.rcs) for p in positions],
        )
        result = runner.run(params)
        detections = detect_targets(result)
        runner.metrics.inc(DETECTIONS_TOTAL, len(detections))

        if plotter is None:
            plotter = RangeDopplerPlot.from_result(result, live=True)
        plotter.update(result, detections=detections, title=f"Frame {frame}")

    runner.stop_tracking(tracker)
    logger.info(f"Health: {runner.health()}")
    logger.info(f"Metrics: {runner.metrics_snapshot()}")

if plotter is not None:
    plotter.close()
