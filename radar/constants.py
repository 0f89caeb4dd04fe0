# radar/constants.py

C = 299_792_458.0  # speed of light (m/s)

# Defaults applied by the parameter resolver
DEFAULT_FC = 10.0e9           # Hz
DEFAULT_FS = 1.0e6            # Hz
DEFAULT_PRF = 500.0           # Hz
DEFAULT_NUM_PULSES = 32
DEFAULT_PULSE_WIDTH = 50e-6   # seconds
DEFAULT_NOISE_SIGMA = 0.1

# Slow-time noise is this fraction of the fast-time noise sigma
DOPPLER_NOISE_SCALE = 0.01
