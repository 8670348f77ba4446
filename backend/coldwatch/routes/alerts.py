"""Alert API routes: listing, manual resolution and on-demand sweeps."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coldwatch.database import get_db
from coldwatch.schemas import (
    AlertListResponse,
    AlertOut,
    AlertStat,
    AlertType,
    ResolveAlertRequest,
    Severity,
    SweepSummary,
)
from coldwatch.services import (
    AlertLifecycleManager,
    AlertNotFoundError,
    ComplianceRepository,
    JobAlreadyRunningError,
    SensorPushClient,
    SweepOrchestrator,
    VendorError,
)
from coldwatch.services.vendor_client import get_vendor_client

router = APIRouter(prefix="/api/alerts", tags=["alerts"])


@router.get("", response_model=AlertListResponse)
async def list_alerts(
    pharmacy_id: int | None = Query(None, alias="pharmacyId", description="Filter by pharmacy"),
    resolved: bool | None = Query(None, description="Filter by resolved flag"),
    severity: Severity | None = Query(None, description="Filter by severity"),
    alert_type: AlertType | None = Query(None, alias="type", description="Filter by alert type"),
    session: AsyncSession = Depends(get_db),
) -> AlertListResponse:
    """Get alerts, open first, then by severity and recency, with per-bucket counts."""
    repository = ComplianceRepository(session)
    alerts = await repository.list_alerts(pharmacy_id, resolved, severity, alert_type)
    stats = await repository.alert_stats(pharmacy_id)

    return AlertListResponse(
        alerts=[AlertOut.model_validate(a) for a in alerts],
        stats=[AlertStat(severity=s, resolved=r, count=c) for s, r, c in stats],
        total_count=len(alerts),
    )


@router.put("/{alert_id}/resolve", response_model=AlertOut)
async def resolve_alert(
    alert_id: int,
    body: ResolveAlertRequest,
    session: AsyncSession = Depends(get_db),
) -> AlertOut:
    """Manually resolve an alert with an operator note."""
    manager = AlertLifecycleManager(ComplianceRepository(session))
    try:
        alert = await manager.resolve(alert_id, body.operator_id, body.note)
    except AlertNotFoundError:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertOut.model_validate(alert)


@router.post("/check", response_model=SweepSummary)
async def check_sensors(
    session: AsyncSession = Depends(get_db),
    vendor: SensorPushClient = Depends(get_vendor_client),
) -> SweepSummary:
    """Run a sweep now instead of waiting for the schedule."""
    orchestrator = SweepOrchestrator(ComplianceRepository(session), vendor)
    try:
        return await orchestrator.run_sweep()
    except JobAlreadyRunningError:
        raise HTTPException(status_code=409, detail="A sweep is already running")
    except VendorError as exc:
        raise HTTPException(status_code=502, detail=f"SensorPush unavailable: {exc}")
