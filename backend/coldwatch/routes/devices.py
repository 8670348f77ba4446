"""Device sync API routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from coldwatch.database import get_db
from coldwatch.schemas import SyncResult, SyncStatus
from coldwatch.services import (
    ComplianceRepository,
    DeviceSyncReconciler,
    JobAlreadyRunningError,
    SensorPushClient,
    VendorError,
    get_sync_status,
)
from coldwatch.services.vendor_client import get_vendor_client

router = APIRouter(prefix="/api/admin/sensors", tags=["devices"])


@router.post("/sync", response_model=SyncResult)
async def sync_devices(
    session: AsyncSession = Depends(get_db),
    vendor: SensorPushClient = Depends(get_vendor_client),
) -> SyncResult:
    """Pull gateways and sensors from SensorPush into the local registry."""
    reconciler = DeviceSyncReconciler(ComplianceRepository(session), vendor)
    try:
        return await reconciler.sync()
    except JobAlreadyRunningError:
        raise HTTPException(status_code=409, detail="A device sync is already running")
    except VendorError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to sync SensorPush data: {exc}")


@router.get("/sync", response_model=SyncStatus)
async def sync_status(session: AsyncSession = Depends(get_db)) -> SyncStatus:
    """Get local gateway and sensor counts."""
    return await get_sync_status(ComplianceRepository(session))
