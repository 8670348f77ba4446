"""Vendor (SensorPush) payload schemas and the typed records they convert into.

The vendor returns loosely typed JSON objects keyed by device id. The pydantic
models below validate those payloads at the boundary; the frozen dataclasses are
what the rest of the service works with.
"""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# --- Wire payloads ---


class VendorSensorPayload(BaseModel):
    """One entry of POST /devices/sensors."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    battery_voltage: float | None = None
    active: bool | None = None
    last_seen: datetime | None = None


class VendorGatewayPayload(BaseModel):
    """One entry of POST /devices/gateways."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    last_seen: datetime | None = None
    paired: bool = False
    version: str | None = None


class VendorSamplePayload(BaseModel):
    """One sample of POST /samples."""

    model_config = ConfigDict(extra="ignore")

    observed: datetime
    temperature: float | None = None
    humidity: float | None = None


class VendorSamplesResponse(BaseModel):
    """Body of POST /samples: samples grouped by sensor id, newest first."""

    model_config = ConfigDict(extra="ignore")

    sensors: dict[str, list[VendorSamplePayload]] = Field(default_factory=dict)


# --- Typed records ---


@dataclass(frozen=True)
class SensorInfo:
    external_id: str
    name: str
    battery_voltage: float | None
    last_seen: datetime | None
    active: bool = True


@dataclass(frozen=True)
class GatewayInfo:
    external_id: str
    name: str
    last_seen: datetime | None
    paired: bool


@dataclass(frozen=True)
class LatestReading:
    """Most recent sample for a sensor; temperature in °C."""

    sensor_id: str
    temperature: float | None
    humidity: float | None
    timestamp: datetime
