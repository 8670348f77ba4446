"""Alert evaluator: one sensor reading + threshold profile -> violation candidates."""

import math
from dataclasses import dataclass, field

from coldwatch.schemas.alerts import AlertType, Severity
from coldwatch.services.thresholds import ThresholdProfile

__all__ = [
    "SensorSnapshot",
    "ViolationCandidate",
    "Evaluation",
    "compute_severity",
    "evaluate",
    "TEMPERATURE_TYPES",
]

TEMPERATURE_TYPES: frozenset[AlertType] = frozenset({"temperature_high", "temperature_low"})

OFFLINE_SEVERITY: Severity = "high"
HUMIDITY_SEVERITY: Severity = "medium"
BATTERY_SEVERITY: Severity = "low"


@dataclass(frozen=True)
class SensorSnapshot:
    """Latest known state of one sensor for a sweep. present=False means no reading came back."""

    present: bool
    temperature: float | None = None
    humidity: float | None = None
    battery_voltage: float | None = None


@dataclass(frozen=True)
class ViolationCandidate:
    type: AlertType
    severity: Severity
    current_value: float | None
    threshold_value: float | None
    message: str


@dataclass(frozen=True)
class Evaluation:
    """Candidates plus the alert types that were actually checked.

    A checked type with no candidate is back in range. Unchecked types (value
    unknown) are left alone by the lifecycle manager.
    """

    candidates: list[ViolationCandidate] = field(default_factory=list)
    checked: frozenset[AlertType] = frozenset()

    @property
    def offline(self) -> bool:
        return any(c.type == "offline" for c in self.candidates)


def compute_severity(value: float, threshold: float) -> Severity:
    """Grade a temperature deviation by its distance from the violated threshold."""
    deviation = abs(value - threshold)
    if deviation > 5:
        return "critical"
    if deviation > 2:
        return "high"
    if deviation > 1:
        return "medium"
    return "low"


def evaluate(
    snapshot: SensorSnapshot,
    profile: ThresholdProfile,
    sensor_name: str = "",
) -> Evaluation:
    """Compute violation candidates for one sensor, in a stable order."""
    temperature = _finite(snapshot.temperature)
    humidity = _finite(snapshot.humidity)
    battery_voltage = _finite(snapshot.battery_voltage)

    if not snapshot.present:
        offline = ViolationCandidate(
            type="offline",
            severity=OFFLINE_SEVERITY,
            current_value=None,
            threshold_value=None,
            message=f"Sensor offline: {sensor_name}" if sensor_name else "Sensor offline",
        )
        return Evaluation(candidates=[offline], checked=frozenset({"offline"}))

    candidates: list[ViolationCandidate] = []
    checked: set[AlertType] = {"offline"}

    if temperature is not None:
        checked |= TEMPERATURE_TYPES
        candidate = _check_temperature(temperature, profile)
        if candidate:
            candidates.append(candidate)

    if humidity is not None and (
        profile.min_humidity is not None or profile.max_humidity is not None
    ):
        checked.add("humidity")
        candidate = _check_humidity(humidity, profile)
        if candidate:
            candidates.append(candidate)

    if battery_voltage is not None:
        checked.add("battery_low")
        floor = profile.min_battery_voltage
        if battery_voltage < floor:
            candidates.append(
                ViolationCandidate(
                    type="battery_low",
                    severity=BATTERY_SEVERITY,
                    current_value=battery_voltage,
                    threshold_value=floor,
                    message=(
                        f"Low battery: {battery_voltage:.2f}V (threshold: {floor}V)"
                    ),
                )
            )

    return Evaluation(candidates=candidates, checked=frozenset(checked))


def _finite(value: float | None) -> float | None:
    """NaN or infinite readings carry no information and count as unknown."""
    if value is None or not math.isfinite(value):
        return None
    return value


def _check_temperature(value: float, profile: ThresholdProfile) -> ViolationCandidate | None:
    if value < profile.min_temp:
        return ViolationCandidate(
            type="temperature_low",
            severity=compute_severity(value, profile.min_temp),
            current_value=value,
            threshold_value=profile.min_temp,
            message=f"Temperature too low: {value:.1f}°C (min: {profile.min_temp}°C)",
        )
    if value > profile.max_temp:
        return ViolationCandidate(
            type="temperature_high",
            severity=compute_severity(value, profile.max_temp),
            current_value=value,
            threshold_value=profile.max_temp,
            message=f"Temperature too high: {value:.1f}°C (max: {profile.max_temp}°C)",
        )
    return None


def _check_humidity(value: float, profile: ThresholdProfile) -> ViolationCandidate | None:
    # Humidity is not graded by magnitude
    if profile.min_humidity is not None and value < profile.min_humidity:
        return ViolationCandidate(
            type="humidity",
            severity=HUMIDITY_SEVERITY,
            current_value=value,
            threshold_value=profile.min_humidity,
            message=f"Humidity too low: {value:.1f}% (min: {profile.min_humidity}%)",
        )
    if profile.max_humidity is not None and value > profile.max_humidity:
        return ViolationCandidate(
            type="humidity",
            severity=HUMIDITY_SEVERITY,
            current_value=value,
            threshold_value=profile.max_humidity,
            message=f"Humidity too high: {value:.1f}% (max: {profile.max_humidity}%)",
        )
    return None
