"""Summaries returned by the scheduled sweep and device sync jobs."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field


class SyncError(BaseModel):
    """A device the sync could not create or update."""

    model_config = ConfigDict(populate_by_name=True)

    device_type: Literal["gateway", "sensor"] = Field(serialization_alias="deviceType")
    external_id: str = Field(serialization_alias="externalId")
    name: str
    reason: str


class SyncResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gateways_created: int = Field(0, serialization_alias="gatewaysCreated")
    gateways_updated: int = Field(0, serialization_alias="gatewaysUpdated")
    sensors_created: int = Field(0, serialization_alias="sensorsCreated")
    sensors_updated: int = Field(0, serialization_alias="sensorsUpdated")
    total_gateways: int = Field(0, serialization_alias="totalGateways")
    total_sensors: int = Field(0, serialization_alias="totalSensors")
    errors: list[SyncError] = Field(default_factory=list)

    @computed_field
    @property
    def created(self) -> int:
        return self.gateways_created + self.sensors_created

    @computed_field
    @property
    def updated(self) -> int:
        return self.gateways_updated + self.sensors_updated


class SyncStatus(BaseModel):
    """Local device registry counts."""

    gateways: int
    sensors: int


class SweepError(BaseModel):
    """A sensor whose alert state could not be reconciled in this sweep."""

    model_config = ConfigDict(populate_by_name=True)

    sensor_id: str = Field(serialization_alias="sensorId")
    pharmacy_id: int | None = Field(None, serialization_alias="pharmacyId")
    reason: str


class SweepSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assignments: int = 0
    readings: int = 0
    evaluated: int = 0
    created: int = 0
    updated: int = 0
    resolved: int = 0
    errors: list[SweepError] = Field(default_factory=list)
