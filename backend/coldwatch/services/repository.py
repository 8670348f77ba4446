"""Store operations the alert engine and device sync need, bound to one session."""

from datetime import datetime, timedelta

from sqlalchemy import case, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coldwatch.models import Alert, Gateway, JobLock, Pharmacy, Sensor, SensorAssignment

SEVERITY_RANK = {"critical": 4, "high": 3, "medium": 2, "low": 1}


class ComplianceRepository:
    """Explicit store handle passed into the sweep, the sync and the lifecycle manager."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    # --- Pharmacies and assignments ---

    async def list_pharmacies(self) -> list[Pharmacy]:
        result = await self.session.execute(select(Pharmacy).order_by(Pharmacy.id))
        return list(result.scalars().all())

    async def list_active_assignments(self) -> list[SensorAssignment]:
        result = await self.session.execute(
            select(SensorAssignment)
            .where(SensorAssignment.is_active.is_(True))
            .order_by(SensorAssignment.id)
        )
        return list(result.scalars().all())

    async def get_assignment(self, assignment_id: int) -> SensorAssignment | None:
        return await self.session.get(SensorAssignment, assignment_id)

    async def assign_sensor(
        self,
        sensor_id: str,
        pharmacy_id: int,
        sensor_name: str,
        location_type: str,
        now: datetime,
    ) -> SensorAssignment:
        """Create or reactivate the assignment for (sensor, pharmacy)."""
        result = await self.session.execute(
            select(SensorAssignment).where(
                SensorAssignment.sensor_id == sensor_id,
                SensorAssignment.pharmacy_id == pharmacy_id,
            )
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            assignment = SensorAssignment(
                sensor_id=sensor_id,
                pharmacy_id=pharmacy_id,
                created_at=now,
            )
            self.session.add(assignment)
        assignment.sensor_name = sensor_name
        assignment.location_type = location_type
        assignment.is_active = True
        assignment.updated_at = now
        await self.session.flush()
        return assignment

    async def deactivate_assignment(self, assignment_id: int, now: datetime) -> bool:
        assignment = await self.get_assignment(assignment_id)
        if assignment is None:
            return False
        assignment.is_active = False
        assignment.updated_at = now
        await self.session.flush()
        return True

    # --- Alerts ---

    async def open_alerts_for_sensor(self, sensor_id: str) -> list[Alert]:
        """Unresolved alerts for a sensor, newest first."""
        result = await self.session.execute(
            select(Alert)
            .where(Alert.sensor_id == sensor_id, Alert.resolved.is_(False))
            .order_by(Alert.created_at.desc(), Alert.id.desc())
        )
        return list(result.scalars().all())

    async def get_alert(self, alert_id: int) -> Alert | None:
        return await self.session.get(Alert, alert_id)

    def add_alert(self, alert: Alert) -> None:
        self.session.add(alert)

    async def list_alerts(
        self,
        pharmacy_id: int | None = None,
        resolved: bool | None = None,
        severity: str | None = None,
        alert_type: str | None = None,
    ) -> list[Alert]:
        """Alerts ordered open first, then most severe, then newest."""
        query = select(Alert)
        if pharmacy_id is not None:
            query = query.where(Alert.pharmacy_id == pharmacy_id)
        if resolved is not None:
            query = query.where(Alert.resolved.is_(resolved))
        if severity:
            query = query.where(Alert.severity == severity)
        if alert_type:
            query = query.where(Alert.type == alert_type)

        rank = case(SEVERITY_RANK, value=Alert.severity, else_=0)
        query = query.order_by(Alert.resolved.asc(), rank.desc(), Alert.created_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def active_alerts(self, pharmacy_id: int | None = None) -> list[Alert]:
        return await self.list_alerts(pharmacy_id=pharmacy_id, resolved=False)

    async def alert_stats(self, pharmacy_id: int | None = None) -> list[tuple[str, bool, int]]:
        """Counts per (severity, resolved)."""
        query = select(Alert.severity, Alert.resolved, func.count(Alert.id)).group_by(
            Alert.severity, Alert.resolved
        )
        if pharmacy_id is not None:
            query = query.where(Alert.pharmacy_id == pharmacy_id)
        result = await self.session.execute(query)
        return [(row[0], bool(row[1]), int(row[2])) for row in result.all()]

    # --- Devices ---

    async def get_gateway_by_external_id(self, gateway_id: str) -> Gateway | None:
        result = await self.session.execute(select(Gateway).where(Gateway.gateway_id == gateway_id))
        return result.scalar_one_or_none()

    async def upsert_gateway(
        self,
        gateway_id: str,
        name: str,
        last_seen: datetime | None,
        paired: bool,
        pharmacy_id: int | None,
        now: datetime,
    ) -> tuple[Gateway, bool]:
        """Update the gateway with this external id, or insert it. Returns (row, created)."""
        gateway = await self.get_gateway_by_external_id(gateway_id)
        created = gateway is None
        if gateway is None:
            gateway = Gateway(gateway_id=gateway_id, created_at=now, pharmacy_id=pharmacy_id)
            self.session.add(gateway)
        elif gateway.pharmacy_id is None and pharmacy_id is not None:
            gateway.pharmacy_id = pharmacy_id
        gateway.name = name
        gateway.last_seen = last_seen
        gateway.paired = paired
        gateway.updated_at = now
        await self.session.flush()
        return gateway, created

    async def get_sensor_by_external_id(self, sensor_id: str) -> Sensor | None:
        result = await self.session.execute(select(Sensor).where(Sensor.sensor_id == sensor_id))
        return result.scalar_one_or_none()

    async def upsert_sensor(
        self,
        sensor_id: str,
        name: str,
        gateway_pk: int,
        battery_voltage: float | None,
        last_seen: datetime | None,
        now: datetime,
        active: bool = True,
    ) -> tuple[Sensor, bool]:
        """Update the sensor mirror with this external id, or insert it. Returns (row, created)."""
        sensor = await self.get_sensor_by_external_id(sensor_id)
        created = sensor is None
        if sensor is None:
            sensor = Sensor(sensor_id=sensor_id, created_at=now)
            self.session.add(sensor)
        sensor.name = name
        sensor.gateway_id = gateway_pk
        sensor.battery_voltage = battery_voltage
        sensor.active = active
        if last_seen is not None:
            sensor.last_reading_timestamp = last_seen
        sensor.updated_at = now
        await self.session.flush()
        return sensor, created

    async def record_latest_reading(
        self,
        sensor_id: str,
        temperature: float | None,
        humidity: float | None,
        timestamp: datetime,
        now: datetime,
    ) -> None:
        """Refresh the mirror's cached reading, if the sensor has been synced."""
        await self.session.execute(
            update(Sensor)
            .where(Sensor.sensor_id == sensor_id)
            .values(
                last_reading_temperature=temperature,
                last_reading_humidity=humidity,
                last_reading_timestamp=timestamp,
                updated_at=now,
            )
        )

    async def count_gateways(self) -> int:
        return int(await self.session.scalar(select(func.count(Gateway.id))) or 0)

    async def count_sensors(self) -> int:
        return int(await self.session.scalar(select(func.count(Sensor.id))) or 0)

    # --- Run-locks ---

    async def acquire_job_lock(
        self, job_name: str, owner: str, now: datetime, ttl_seconds: int
    ) -> bool:
        """Take the lease for a job. False when another owner holds an unexpired lease."""
        expires_at = now + timedelta(seconds=ttl_seconds)
        takeover = await self.session.execute(
            update(JobLock)
            .where(JobLock.job_name == job_name, JobLock.expires_at <= now)
            .values(owner=owner, acquired_at=now, expires_at=expires_at)
        )
        if takeover.rowcount == 1:
            await self.session.commit()
            return True

        try:
            await self.session.execute(
                insert(JobLock).values(
                    job_name=job_name, owner=owner, acquired_at=now, expires_at=expires_at
                )
            )
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            return False
        return True

    async def renew_job_lock(
        self, job_name: str, owner: str, now: datetime, ttl_seconds: int
    ) -> bool:
        """Push the owner's lease out by ttl_seconds. False when the lease is no longer ours."""
        renewed = await self.session.execute(
            update(JobLock)
            .where(JobLock.job_name == job_name, JobLock.owner == owner)
            .values(expires_at=now + timedelta(seconds=ttl_seconds))
        )
        await self.session.commit()
        return renewed.rowcount == 1

    async def release_job_lock(self, job_name: str, owner: str) -> None:
        await self.session.execute(
            delete(JobLock).where(JobLock.job_name == job_name, JobLock.owner == owner)
        )
        await self.session.commit()
