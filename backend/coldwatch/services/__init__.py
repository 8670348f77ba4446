"""Service layer modules."""

from coldwatch.services.evaluator import SensorSnapshot, ViolationCandidate, evaluate
from coldwatch.services.inference import TenantInference
from coldwatch.services.lifecycle import AlertLifecycleManager, AlertNotFoundError
from coldwatch.services.locks import JobAlreadyRunningError
from coldwatch.services.repository import ComplianceRepository
from coldwatch.services.sweep_service import SweepOrchestrator, run_sweep
from coldwatch.services.sync_service import DeviceSyncReconciler, get_sync_status, run_sync
from coldwatch.services.thresholds import ThresholdProfile, thresholds_for
from coldwatch.services.vendor_client import SensorPushClient, VendorError

__all__ = [
    "thresholds_for",
    "ThresholdProfile",
    "SensorSnapshot",
    "ViolationCandidate",
    "evaluate",
    "TenantInference",
    "ComplianceRepository",
    "AlertLifecycleManager",
    "AlertNotFoundError",
    "JobAlreadyRunningError",
    "SweepOrchestrator",
    "run_sweep",
    "DeviceSyncReconciler",
    "get_sync_status",
    "run_sync",
    "SensorPushClient",
    "VendorError",
]
