# analysis/threat.py

from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List

from radar.errors import InvalidParameterError

MAX_ANALYSIS_RANGE_M = 100_000.0


@dataclass(frozen=True)
class TargetPosition:
    id: int
    range_m: float        # meters
    azimuth_deg: float    # degrees, [0, 360)
    vel_m_s: float        # m/s, positive = moving away
    rcs: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TrajectoryAnalysis:
    heading_deg: float
    speed_m_s: float
    altitude_estimate_m: float


@dataclass
class RiskAssessment:
    proximity_risk: float   # 0-100
    velocity_risk: float    # 0-100
    overall_risk: float     # 0-100


@dataclass
class DroneAnalysis:
    drone_id: int
    threat_level: str       # "low" | "medium" | "high"
    estimated_type: str
    confidence: float       # 0-1
    trajectory_analysis: TrajectoryAnalysis
    risk_assessment: RiskAssessment
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def target_position_from_config(config: Dict[str, Any]) -> TargetPosition:
    if not isinstance(config, dict):
        raise InvalidParameterError(f"target must be an object, got {config!r}")
    try:
        return TargetPosition(
            id=int(config["id"]),
            range_m=float(config["range_m"]),
            azimuth_deg=float(config["azimuth_deg"]),
            vel_m_s=float(config["vel_m_s"]),
            rcs=float(config["rcs"]),
        )
    except KeyError as e:
        raise InvalidParameterError(f"target is missing field {e.args[0]!r}") from e
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(f"invalid target field: {e}") from e


def validate_target_position(target: TargetPosition) -> TargetPosition:
    if not 0.0 <= target.range_m <= MAX_ANALYSIS_RANGE_M:
        raise InvalidParameterError(f"Invalid range: {target.range_m}")
    if not 0.0 <= target.azimuth_deg < 360.0:
        raise InvalidParameterError(f"Invalid azimuth: {target.azimuth_deg}")
    return target


def classify(target: TargetPosition) -> DroneAnalysis:
    """
    Heuristic threat assessment of a single tracked drone from its range,
    radial speed and RCS. Fixed thresholds, no learning.
    """
    speed = abs(target.vel_m_s)
    range_km = target.range_m / 1000.0

    if range_km < 5.0 and speed > 40.0:
        threat_level = "high"
    elif range_km < 10.0 or speed > 30.0:
        threat_level = "medium"
    else:
        threat_level = "low"

    if speed > 50.0:
        estimated_type = "Racing/High-Speed"
    elif target.rcs > 0.8:
        estimated_type = "Commercial/Large"
    else:
        estimated_type = "Consumer/Small"

    confidence = min(target.rcs * 0.6 + 0.4, 1.0)

    if range_km < 2.0:
        altitude_estimate_m = 50.0 + range_km * 25.0
    else:
        altitude_estimate_m = 100.0 + range_km * 20.0

    proximity_risk = (1.0 - min(range_km / 50.0, 1.0)) * 100.0
    velocity_risk = min(speed / 100.0, 1.0) * 100.0
    overall_risk = min(proximity_risk * 0.6 + velocity_risk * 0.4, 100.0)

    recommendations = []
    if proximity_risk > 70.0:
        recommendations.append("High proximity risk - consider immediate action")
    if velocity_risk > 60.0:
        recommendations.append("High velocity detected - monitor closely")
    if range_km < 3.0:
        recommendations.append("Drone in close range - alert security personnel")
    if not recommendations:
        recommendations.append("Continue monitoring - no immediate action required")

    return DroneAnalysis(
        drone_id=target.id,
        threat_level=threat_level,
        estimated_type=estimated_type,
        confidence=confidence,
        trajectory_analysis=TrajectoryAnalysis(
            heading_deg=target.azimuth_deg,
            speed_m_s=speed,
            altitude_estimate_m=altitude_estimate_m,
        ),
        risk_assessment=RiskAssessment(
            proximity_risk=proximity_risk,
            velocity_risk=velocity_risk,
            overall_risk=overall_risk,
        ),
        recommendations=recommendations,
    )
