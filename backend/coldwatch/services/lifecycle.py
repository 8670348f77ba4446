"""Alert lifecycle: keep at most one open alert per (sensor, type).

Open alerts are created on first detection, refreshed while the violation
persists and auto-resolved once a checked metric is back in range. Severity is
set at creation and not re-graded on refresh. Resolved rows are history: a new
violation after resolution creates a new row. An open alert belongs to the
pharmacy it was opened for: once the sensor is reassigned it is closed and the
new owner gets its own row.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from coldwatch.clock import Clock, SystemClock
from coldwatch.models import Alert, SensorAssignment
from coldwatch.services.evaluator import Evaluation
from coldwatch.services.repository import ComplianceRepository

logger = logging.getLogger(__name__)

AUTO_RESOLVE_NOTE = "Auto-resolved: back in range"
DUPLICATE_RESOLVE_NOTE = "Auto-resolved: duplicate open alert"
REASSIGNED_RESOLVE_NOTE = "Auto-resolved: sensor reassigned"
MANUAL_RESOLVE_NOTE = "Manually resolved"


class AlertNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class AssignmentRef:
    """Plain snapshot of a sensor assignment, safe to use after a rollback."""

    assignment_id: int
    sensor_id: str
    pharmacy_id: int
    sensor_name: str
    location_type: str

    @classmethod
    def from_model(cls, assignment: SensorAssignment) -> "AssignmentRef":
        return cls(
            assignment_id=assignment.id,
            sensor_id=assignment.sensor_id,
            pharmacy_id=assignment.pharmacy_id,
            sensor_name=assignment.sensor_name,
            location_type=assignment.location_type,
        )


@dataclass
class ReconcileOutcome:
    created: int = 0
    updated: int = 0
    resolved: int = 0


class AlertLifecycleManager:
    def __init__(self, repository: ComplianceRepository, clock: Clock | None = None):
        self.repository = repository
        self.clock = clock or SystemClock()

    async def reconcile(self, sensor: AssignmentRef, evaluation: Evaluation) -> ReconcileOutcome:
        """Apply one sensor's evaluation to its open alerts and commit."""
        if not sensor.sensor_id or sensor.pharmacy_id is None:
            raise ValueError(f"Assignment {sensor.assignment_id} is missing sensor or pharmacy")

        now = self.clock.now()
        outcome = ReconcileOutcome()

        open_by_type: dict[str, Alert] = {}
        for alert in await self.repository.open_alerts_for_sensor(sensor.sensor_id):
            if alert.type in open_by_type:
                # Keep the newest; older duplicates predate the open-alert index
                self._close(alert, now, DUPLICATE_RESOLVE_NOTE)
                outcome.resolved += 1
                continue
            if alert.pharmacy_id != sensor.pharmacy_id:
                # Opened for a previous owner; the current pharmacy gets its own row
                self._close(alert, now, REASSIGNED_RESOLVE_NOTE)
                outcome.resolved += 1
                logger.info(
                    f"Closed {alert.type} alert for sensor {sensor.sensor_id}: moved from "
                    f"pharmacy {alert.pharmacy_id} to {sensor.pharmacy_id}"
                )
                continue
            open_by_type[alert.type] = alert

        detected: set[str] = set()
        for candidate in evaluation.candidates:
            if candidate.type in detected:
                continue
            detected.add(candidate.type)

            existing = open_by_type.get(candidate.type)
            if existing is not None:
                existing.current_value = candidate.current_value
                existing.message = candidate.message
                existing.updated_at = now
                outcome.updated += 1
                logger.debug(f"Refreshed {candidate.type} alert for sensor {sensor.sensor_name}")
                continue

            self.repository.add_alert(
                Alert(
                    sensor_id=sensor.sensor_id,
                    pharmacy_id=sensor.pharmacy_id,
                    type=candidate.type,
                    severity=candidate.severity,
                    location=sensor.location_type,
                    current_value=candidate.current_value,
                    threshold_value=candidate.threshold_value,
                    message=candidate.message,
                    resolved=False,
                    created_at=now,
                    updated_at=now,
                )
            )
            outcome.created += 1
            logger.info(
                f"Created {candidate.severity} {candidate.type} alert "
                f"for sensor {sensor.sensor_name} ({sensor.sensor_id})"
            )

        for alert_type, alert in open_by_type.items():
            # Unchecked types are unknown this pass, not corrected
            if alert_type in detected or alert_type not in evaluation.checked:
                continue
            self._close(alert, now, AUTO_RESOLVE_NOTE)
            outcome.resolved += 1
            logger.info(f"Auto-resolved {alert_type} alert for sensor {sensor.sensor_name}")

        await self.repository.commit()
        return outcome

    async def resolve(self, alert_id: int, operator_id: str, note: str | None = None) -> Alert:
        """Manually resolve an alert. Resolving an already resolved alert changes nothing."""
        alert = await self.repository.get_alert(alert_id)
        if alert is None:
            raise AlertNotFoundError(f"Alert {alert_id} not found")
        if alert.resolved:
            return alert

        self._close(alert, self.clock.now(), note or MANUAL_RESOLVE_NOTE, operator_id)
        await self.repository.commit()
        logger.info(f"Alert {alert_id} resolved by {operator_id}")
        return alert

    @staticmethod
    def _close(alert: Alert, now: datetime, note: str, operator_id: str | None = None) -> None:
        alert.resolved = True
        alert.resolved_at = now
        alert.resolved_by = operator_id
        alert.resolved_note = note
        alert.updated_at = now
