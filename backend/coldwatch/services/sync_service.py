"""Device sync: reconcile the vendor's gateway and sensor inventory into local records."""

import logging
from typing import Protocol

from coldwatch.clock import Clock, SystemClock
from coldwatch.config import SYNC_LOCK_TTL_SECONDS
from coldwatch.database import get_session
from coldwatch.schemas.jobs import SyncError, SyncResult, SyncStatus
from coldwatch.schemas.vendor import GatewayInfo, SensorInfo
from coldwatch.services.inference import GatewayCandidate, Tenant, TenantInference
from coldwatch.services.locks import JobLease, job_lock
from coldwatch.services.repository import ComplianceRepository
from coldwatch.services.vendor_client import SensorPushClient

logger = logging.getLogger(__name__)

__all__ = ["SYNC_JOB", "DeviceInventory", "DeviceSyncReconciler", "get_sync_status", "run_sync"]

SYNC_JOB = "device_sync"


class DeviceInventory(Protocol):
    async def authenticate(self) -> str: ...

    async def list_gateways(self) -> dict[str, GatewayInfo]: ...

    async def list_sensors(self) -> dict[str, SensorInfo]: ...


class DeviceSyncReconciler:
    """One inventory pass. Idempotent: unchanged vendor data only refreshes timestamps."""

    def __init__(
        self,
        repository: ComplianceRepository,
        vendor: DeviceInventory,
        clock: Clock | None = None,
        inference: TenantInference | None = None,
        lock_ttl_seconds: int = SYNC_LOCK_TTL_SECONDS,
    ):
        self.repository = repository
        self.vendor = vendor
        self.clock = clock or SystemClock()
        self.inference = inference
        self.lock_ttl_seconds = lock_ttl_seconds

    async def sync(self) -> SyncResult:
        async with job_lock(
            self.repository, SYNC_JOB, self.lock_ttl_seconds, self.clock
        ) as lease:
            result = await self._sync(lease)
        logger.info(
            f"Device sync finished: {result.created} created, {result.updated} updated, "
            f"{len(result.errors)} errors"
        )
        return result

    async def _sync(self, lease: JobLease) -> SyncResult:
        await self.vendor.authenticate()
        gateways = await self.vendor.list_gateways()
        sensors = await self.vendor.list_sensors()
        await lease.renew()

        inference = self.inference
        if inference is None:
            tenants = [
                Tenant(id=p.id, code=p.code, name=p.name)
                for p in await self.repository.list_pharmacies()
            ]
            inference = TenantInference.from_tenants(tenants)

        result = SyncResult(total_gateways=len(gateways), total_sensors=len(sensors))
        candidates: list[GatewayCandidate] = []
        for info in gateways.values():
            candidates.append(await self._sync_gateway(info, inference, result))
            await lease.renew()
        for info in sensors.values():
            await self._sync_sensor(info, candidates, inference, result)
            await lease.renew()
        return result

    async def _sync_gateway(
        self, info: GatewayInfo, inference: TenantInference, result: SyncResult
    ) -> GatewayCandidate:
        """Upsert one gateway and return it as a candidate for sensor matching."""
        tenant_id = inference.infer_tenant(info.name)
        try:
            existing = await self.repository.get_gateway_by_external_id(info.external_id)
            if existing is None and tenant_id is None:
                result.errors.append(
                    SyncError(
                        device_type="gateway",
                        external_id=info.external_id,
                        name=info.name,
                        reason="Could not determine pharmacy for gateway",
                    )
                )
                return GatewayCandidate(info.external_id, info.name, None)

            gateway, created = await self.repository.upsert_gateway(
                info.external_id,
                info.name,
                info.last_seen,
                info.paired,
                tenant_id,
                self.clock.now(),
            )
            owner = gateway.pharmacy_id
            await self.repository.commit()
        except Exception as exc:
            await self.repository.rollback()
            logger.exception(f"Gateway {info.external_id} sync failed")
            result.errors.append(
                SyncError(
                    device_type="gateway",
                    external_id=info.external_id,
                    name=info.name,
                    reason=str(exc),
                )
            )
            return GatewayCandidate(info.external_id, info.name, tenant_id)

        if created:
            result.gateways_created += 1
            logger.info(f"Created gateway {info.name} for pharmacy {owner}")
        else:
            result.gateways_updated += 1
        return GatewayCandidate(info.external_id, info.name, owner)

    async def _sync_sensor(
        self,
        info: SensorInfo,
        candidates: list[GatewayCandidate],
        inference: TenantInference,
        result: SyncResult,
    ) -> None:
        candidate = inference.infer_gateway_for_sensor(info.name, candidates)
        if candidate is None:
            result.errors.append(
                SyncError(
                    device_type="sensor",
                    external_id=info.external_id,
                    name=info.name,
                    reason="Could not determine gateway for sensor",
                )
            )
            return

        try:
            gateway = await self.repository.get_gateway_by_external_id(candidate.external_id)
            if gateway is None:
                result.errors.append(
                    SyncError(
                        device_type="sensor",
                        external_id=info.external_id,
                        name=info.name,
                        reason=f"Gateway {candidate.external_id} not found locally",
                    )
                )
                return

            _, created = await self.repository.upsert_sensor(
                info.external_id,
                info.name,
                gateway.id,
                info.battery_voltage,
                info.last_seen,
                self.clock.now(),
                active=info.active,
            )
            await self.repository.commit()
        except Exception as exc:
            await self.repository.rollback()
            logger.exception(f"Sensor {info.external_id} sync failed")
            result.errors.append(
                SyncError(
                    device_type="sensor",
                    external_id=info.external_id,
                    name=info.name,
                    reason=str(exc),
                )
            )
            return

        if created:
            result.sensors_created += 1
        else:
            result.sensors_updated += 1


async def get_sync_status(repository: ComplianceRepository) -> SyncStatus:
    return SyncStatus(
        gateways=await repository.count_gateways(),
        sensors=await repository.count_sensors(),
    )


async def run_sync() -> SyncResult:
    """Scheduler entry point: one device sync against the configured store and vendor."""
    async with get_session() as session, SensorPushClient() as vendor:
        return await DeviceSyncReconciler(ComplianceRepository(session), vendor).sync()
