"""Tests for the device sync reconciler."""

from unittest.mock import patch

import pytest
from sqlalchemy import select

from coldwatch.models import Gateway, Sensor
from coldwatch.services.locks import JobAlreadyRunningError
from coldwatch.services.repository import ComplianceRepository
from coldwatch.services.sync_service import SYNC_JOB, DeviceSyncReconciler, get_sync_status

from fakes import FakeVendor, gateway_info, sensor_info


@pytest.fixture
def vendor() -> FakeVendor:
    return FakeVendor(
        gateways=[
            gateway_info("G1", "GPP Gateway"),
            gateway_info("G2", "GFP Gateway"),
        ],
        sensors=[
            sensor_info("S1", "GPP Fridge 1"),
            sensor_info("S2", "GFP Fridge", battery_voltage=2.9),
        ],
    )


@pytest.fixture
def reconciler(repository, vendor, clock, pharmacies) -> DeviceSyncReconciler:
    return DeviceSyncReconciler(repository, vendor, clock)


async def rows(session, model):
    return list((await session.execute(select(model).order_by(model.id))).scalars().all())


class TestSync:
    @pytest.mark.asyncio
    async def test_first_run_creates_devices(self, reconciler, session, pharmacies):
        """Test the first sync creates gateways and sensors."""
        result = await reconciler.sync()

        assert result.gateways_created == 2
        assert result.sensors_created == 2
        assert result.total_gateways == 2
        assert result.total_sensors == 2
        assert result.errors == []

        gateways = await rows(session, Gateway)
        assert [(g.gateway_id, g.pharmacy_id) for g in gateways] == [
            ("G1", pharmacies["PARLIN"]),
            ("G2", pharmacies["FAMILY"]),
        ]
        sensors = {s.sensor_id: s for s in await rows(session, Sensor)}
        assert sensors["S1"].gateway_id == gateways[0].id
        assert sensors["S2"].gateway_id == gateways[1].id
        assert sensors["S2"].battery_voltage == 2.9

    @pytest.mark.asyncio
    async def test_second_run_is_idempotent(self, reconciler, session):
        """Test an unchanged inventory only updates rows."""
        await reconciler.sync()
        result = await reconciler.sync()

        assert result.created == 0
        assert result.updated == 4
        assert len(await rows(session, Gateway)) == 2
        assert len(await rows(session, Sensor)) == 2

    @pytest.mark.asyncio
    async def test_vendor_changes_are_applied(self, reconciler, vendor, session):
        """Test renames, new voltages and the active flag are synced."""
        await reconciler.sync()
        vendor.sensors["S2"] = sensor_info(
            "S2", "GFP Fridge (relabelled)", battery_voltage=2.5, active=False
        )

        await reconciler.sync()

        sensor = next(s for s in await rows(session, Sensor) if s.sensor_id == "S2")
        assert sensor.name == "GFP Fridge (relabelled)"
        assert sensor.battery_voltage == 2.5
        assert not sensor.active

    @pytest.mark.asyncio
    async def test_unresolved_gateway_is_not_created(self, reconciler, vendor, session):
        """Test a gateway without a pharmacy is reported."""
        vendor.gateways["G3"] = gateway_info("G3", "Warehouse Hub")

        result = await reconciler.sync()

        assert [e.external_id for e in result.errors] == ["G3"]
        assert result.errors[0].reason == "Could not determine pharmacy for gateway"
        assert "G3" not in {g.gateway_id for g in await rows(session, Gateway)}

    @pytest.mark.asyncio
    async def test_sensor_on_unresolved_gateway_is_reported(self, reconciler, vendor):
        """Test a sensor on an uncreated gateway is reported."""
        vendor.gateways["G3"] = gateway_info("G3", "Warehouse Hub")
        vendor.sensors["S3"] = sensor_info("S3", "Warehouse Fridge")

        result = await reconciler.sync()

        sensor_errors = [e for e in result.errors if e.device_type == "sensor"]
        assert [(e.external_id, e.reason) for e in sensor_errors] == [
            ("S3", "Gateway G3 not found locally")
        ]
        assert result.sensors_created == 2

    @pytest.mark.asyncio
    async def test_sensor_without_gateway_is_reported(self, reconciler, vendor):
        """Test a sensor matching no gateway is reported."""
        vendor.sensors["S4"] = sensor_info("S4", "Spare Logger")

        result = await reconciler.sync()

        [error] = result.errors
        assert error.external_id == "S4"
        assert error.reason == "Could not determine gateway for sensor"

    @pytest.mark.asyncio
    async def test_status_counts(self, reconciler, repository):
        """Test sync status counts local devices."""
        await reconciler.sync()

        status = await get_sync_status(repository)
        assert status.gateways == 2
        assert status.sensors == 2


class TestSyncLock:
    @pytest.mark.asyncio
    async def test_concurrent_sync_is_refused(self, reconciler, repository, clock):
        """Test a second sync is refused while one holds the lock."""
        assert await repository.acquire_job_lock(SYNC_JOB, "other-host:1", clock.now(), 600)

        with pytest.raises(JobAlreadyRunningError):
            await reconciler.sync()

    @pytest.mark.asyncio
    async def test_expired_lease_is_taken_over(self, reconciler, repository, clock):
        """Test an expired lease does not block the next sync."""
        assert await repository.acquire_job_lock(SYNC_JOB, "other-host:1", clock.now(), 60)
        clock.advance(minutes=5)

        result = await reconciler.sync()

        assert result.gateways_created == 2

    @pytest.mark.asyncio
    async def test_lock_is_released_after_run(self, reconciler, repository, clock):
        """Test the lease is released after a sync."""
        await reconciler.sync()
        assert await repository.acquire_job_lock(SYNC_JOB, "other-host:1", clock.now(), 600)


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_one_device_failure_does_not_stop_the_sync(self, reconciler, session):
        """Test an error on one device is isolated."""
        original = ComplianceRepository.upsert_sensor

        async def flaky(self, sensor_id, *args, **kwargs):
            if sensor_id == "S1":
                raise ValueError("battery_voltage out of range")
            return await original(self, sensor_id, *args, **kwargs)

        with patch.object(ComplianceRepository, "upsert_sensor", flaky):
            result = await reconciler.sync()

        assert [(e.external_id, e.reason) for e in result.errors] == [
            ("S1", "battery_voltage out of range")
        ]
        assert result.gateways_created == 2
        assert result.sensors_created == 1
        assert [s.sensor_id for s in await rows(session, Sensor)] == ["S2"]
