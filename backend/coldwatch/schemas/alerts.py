"""Pydantic schemas for the alerts API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AlertType = Literal["temperature_high", "temperature_low", "humidity", "battery_low", "offline"]
Severity = Literal["low", "medium", "high", "critical"]


class AlertOut(BaseModel):
    """An alert row as exposed to the dashboard and report generators."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    sensor_id: str = Field(serialization_alias="sensorId")
    pharmacy_id: int = Field(serialization_alias="pharmacyId")
    type: AlertType
    severity: Severity
    location: str | None = None
    current_value: float | None = Field(serialization_alias="currentValue")
    threshold_value: float | None = Field(serialization_alias="thresholdValue")
    message: str
    resolved: bool
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")
    resolved_at: datetime | None = Field(serialization_alias="resolvedAt")
    resolved_by: str | None = Field(serialization_alias="resolvedBy")
    resolved_note: str | None = Field(serialization_alias="resolvedNote")


class AlertStat(BaseModel):
    """Count of alerts for one (severity, resolved) bucket."""

    severity: Severity
    resolved: bool
    count: int


class AlertListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    alerts: list[AlertOut]
    stats: list[AlertStat]
    total_count: int = Field(serialization_alias="totalCount")


class ResolveAlertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operator_id: str = Field(alias="operatorId", min_length=1)
    note: str | None = None
