"""SQLAlchemy models."""

from coldwatch.models.alert import Alert
from coldwatch.models.device import Gateway, Sensor
from coldwatch.models.job_lock import JobLock
from coldwatch.models.pharmacy import Pharmacy, SensorAssignment

__all__ = [
    "Pharmacy",
    "SensorAssignment",
    "Gateway",
    "Sensor",
    "Alert",
    "JobLock",
]
