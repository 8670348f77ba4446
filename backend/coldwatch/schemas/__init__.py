"""Pydantic schemas for API request/response models and vendor payloads."""

from coldwatch.schemas.alerts import (
    AlertListResponse,
    AlertOut,
    AlertStat,
    AlertType,
    ResolveAlertRequest,
    Severity,
)
from coldwatch.schemas.jobs import SweepError, SweepSummary, SyncError, SyncResult, SyncStatus
from coldwatch.schemas.vendor import GatewayInfo, LatestReading, SensorInfo

__all__ = [
    # Alert schemas
    "AlertType",
    "Severity",
    "AlertOut",
    "AlertStat",
    "AlertListResponse",
    "ResolveAlertRequest",
    # Job summaries
    "SweepError",
    "SweepSummary",
    "SyncError",
    "SyncResult",
    "SyncStatus",
    # Vendor records
    "SensorInfo",
    "GatewayInfo",
    "LatestReading",
]
