import matplotlib.pyplot as plt
import numpy as np

from processing.detection import detect_doppler_lines, detect_targets
from processing.pipeline import simulate
from radar.signal_generator import SimulationParams, Target
from visualization.range_doppler_plot import RangeDopplerPlot


# Two slow movers inside the unambiguous velocity interval (+-3.75 m/s at 10 GHz / 500 Hz)
params = SimulationParams(
    noise_sigma=0.05,
    targets=[
        Target(range_m=6_000.0, vel_m_s=1.5, rcs=1.0),
        Target(range_m=18_000.0, vel_m_s=-2.5, rcs=0.6),
    ],
)

result = simulate(params, rng=np.random.default_rng(7))
detections = detect_targets(result)

for det in detections:
    print(f"range={det.range_m:8.1f} m  velocity={det.velocity_m_s:+6.2f} m/s  mag={det.magnitude:.1f}")

for line in detect_doppler_lines(result):
    print(f"Doppler line: bin={line.doppler_bin:3d}  velocity={line.velocity_m_s:+6.2f} m/s")

plotter = RangeDopplerPlot.from_result(result)
plotter.update(result, detections=detections, title="Simulated Targets")
plt.show()
