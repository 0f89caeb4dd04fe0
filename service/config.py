# service/config.py

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Mapping, Optional

VERSION = "1.0.0"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class RunnerConfig:
    max_workers: int = 4
    timeout_s: float = 30.0
    log_level: str = "INFO"
    track_interval_s: float = 0.1
    seed: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "RunnerConfig":
        """Read RADAR_SIM_* variables, falling back to the defaults above."""
        env = os.environ if environ is None else environ
        seed = env.get("RADAR_SIM_SEED")
        return cls(
            max_workers=int(env.get("RADAR_SIM_MAX_WORKERS", cls.max_workers)),
            timeout_s=float(env.get("RADAR_SIM_TIMEOUT_S", cls.timeout_s)),
            log_level=env.get("RADAR_SIM_LOG_LEVEL", cls.log_level).upper(),
            track_interval_s=float(env.get("RADAR_SIM_TRACK_INTERVAL_S", cls.track_interval_s)),
            seed=int(seed) if seed else None,
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
