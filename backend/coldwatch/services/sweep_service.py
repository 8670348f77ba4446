"""Sweep orchestrator: the scheduled alert evaluation pass.

Loads active sensor assignments, bulk-fetches the latest vendor readings and
runs the evaluator and lifecycle manager per sensor. Sensors are independent:
one sensor's failure is recorded and the sweep moves on. The pass is
re-entrant, so a killed sweep is simply finished by the next one.
"""

import logging
from typing import Protocol

from coldwatch.clock import Clock, SystemClock
from coldwatch.config import SWEEP_LOCK_TTL_SECONDS
from coldwatch.database import get_session
from coldwatch.schemas.jobs import SweepError, SweepSummary
from coldwatch.schemas.vendor import LatestReading, SensorInfo
from coldwatch.services.evaluator import SensorSnapshot, evaluate
from coldwatch.services.lifecycle import AlertLifecycleManager, AssignmentRef
from coldwatch.services.locks import JobLease, job_lock
from coldwatch.services.repository import ComplianceRepository
from coldwatch.services.thresholds import ThresholdRegistry, default_registry
from coldwatch.services.vendor_client import SensorPushClient

logger = logging.getLogger(__name__)

__all__ = ["SWEEP_JOB", "ReadingsSource", "SweepOrchestrator", "run_sweep"]

SWEEP_JOB = "alert_sweep"


class ReadingsSource(Protocol):
    async def list_sensors(self) -> dict[str, SensorInfo]: ...

    async def latest_readings(self, sensor_ids: list[str]) -> dict[str, LatestReading]: ...


class SweepOrchestrator:
    def __init__(
        self,
        repository: ComplianceRepository,
        vendor: ReadingsSource,
        registry: ThresholdRegistry | None = None,
        clock: Clock | None = None,
        lock_ttl_seconds: int = SWEEP_LOCK_TTL_SECONDS,
    ):
        self.repository = repository
        self.vendor = vendor
        self.registry = registry or default_registry
        self.clock = clock or SystemClock()
        self.lifecycle = AlertLifecycleManager(repository, self.clock)
        self.lock_ttl_seconds = lock_ttl_seconds

    async def run_sweep(self) -> SweepSummary:
        """Run one sweep under the sweep run-lock.

        Raises JobAlreadyRunningError when another sweep holds the lock and
        VendorError when inventory or readings cannot be fetched; in both cases
        no alert has been written. Raises JobLeaseLostError (a JobAlreadyRunningError)
        if the lease was taken over mid-run.
        """
        async with job_lock(
            self.repository, SWEEP_JOB, self.lock_ttl_seconds, self.clock
        ) as lease:
            summary = await self._sweep(lease)
        logger.info(
            f"Sweep finished: {summary.evaluated}/{summary.assignments} sensors evaluated, "
            f"{summary.created} created, {summary.updated} updated, "
            f"{summary.resolved} resolved, {len(summary.errors)} errors"
        )
        return summary

    async def _sweep(self, lease: JobLease) -> SweepSummary:
        summary = SweepSummary()

        assignments = [
            AssignmentRef.from_model(a) for a in await self.repository.list_active_assignments()
        ]
        summary.assignments = len(assignments)
        if not assignments:
            logger.info("No active sensor assignments - nothing to monitor yet")
            return summary

        assignments = self._one_per_sensor(assignments, summary)
        sensor_ids = [a.sensor_id for a in assignments]

        inventory = await self.vendor.list_sensors()
        readings = await self.vendor.latest_readings(sensor_ids)
        await lease.renew()
        summary.readings = len(readings)
        if not readings:
            logger.info("Vendor returned no readings for assigned sensors - nothing to evaluate")
            return summary

        for assignment in assignments:
            try:
                await self._process(
                    assignment,
                    readings.get(assignment.sensor_id),
                    inventory.get(assignment.sensor_id),
                    summary,
                )
            except Exception as exc:
                # One sensor never takes the rest of the sweep down with it
                await self.repository.rollback()
                logger.exception(f"Failed to reconcile alerts for sensor {assignment.sensor_id}")
                summary.errors.append(
                    SweepError(
                        sensor_id=assignment.sensor_id,
                        pharmacy_id=assignment.pharmacy_id,
                        reason=str(exc),
                    )
                )
            await lease.renew()
        return summary

    async def _process(
        self,
        assignment: AssignmentRef,
        reading: LatestReading | None,
        info: SensorInfo | None,
        summary: SweepSummary,
    ) -> None:
        profile = self.registry.thresholds_for(
            assignment.location_type, tenant_key=str(assignment.pharmacy_id)
        )
        snapshot = SensorSnapshot(
            present=reading is not None,
            temperature=reading.temperature if reading else None,
            humidity=reading.humidity if reading else None,
            battery_voltage=info.battery_voltage if info else None,
        )
        if reading is not None:
            await self.repository.record_latest_reading(
                assignment.sensor_id,
                reading.temperature,
                reading.humidity,
                reading.timestamp,
                self.clock.now(),
            )

        evaluation = evaluate(snapshot, profile, assignment.sensor_name)
        outcome = await self.lifecycle.reconcile(assignment, evaluation)

        summary.evaluated += 1
        summary.created += outcome.created
        summary.updated += outcome.updated
        summary.resolved += outcome.resolved

    @staticmethod
    def _one_per_sensor(
        assignments: list[AssignmentRef], summary: SweepSummary
    ) -> list[AssignmentRef]:
        """Keep the first active assignment per sensor id; report the rest."""
        seen: dict[str, AssignmentRef] = {}
        for assignment in assignments:
            first = seen.setdefault(assignment.sensor_id, assignment)
            if first is assignment:
                continue
            logger.warning(
                f"Sensor {assignment.sensor_id} is actively assigned to pharmacies "
                f"{first.pharmacy_id} and {assignment.pharmacy_id}; using the first"
            )
            summary.errors.append(
                SweepError(
                    sensor_id=assignment.sensor_id,
                    pharmacy_id=assignment.pharmacy_id,
                    reason=f"Duplicate active assignment (already monitored for pharmacy "
                    f"{first.pharmacy_id})",
                )
            )
        return list(seen.values())


async def run_sweep() -> SweepSummary:
    """Scheduler entry point: one sweep against the configured store and vendor."""
    async with get_session() as session, SensorPushClient() as vendor:
        return await SweepOrchestrator(ComplianceRepository(session), vendor).run_sweep()
