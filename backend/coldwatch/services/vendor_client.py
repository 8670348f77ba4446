"""SensorPush API client.

Wraps the vendor's OAuth handshake and device/sample endpoints. Every call has a
bounded timeout and is never retried: the next scheduled run retries naturally.
Payloads are validated and converted into typed records immediately.
"""

import logging
from collections.abc import Iterable, Iterator
from datetime import datetime, timedelta
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from coldwatch.clock import Clock, SystemClock, to_naive_utc
from coldwatch.config import (
    SENSORPUSH_BASE_URL,
    SENSORPUSH_EMAIL,
    SENSORPUSH_PASSWORD,
    SENSORPUSH_SAMPLES_BATCH_SIZE,
    SENSORPUSH_TEMPERATURE_UNIT,
    SENSORPUSH_TIMEOUT_SECONDS,
    TOKEN_LIFETIME_MINUTES,
)
from coldwatch.schemas.vendor import (
    GatewayInfo,
    LatestReading,
    SensorInfo,
    VendorGatewayPayload,
    VendorSamplesResponse,
    VendorSensorPayload,
)

logger = logging.getLogger(__name__)


class VendorError(Exception):
    """The vendor API failed or returned something unusable."""


class VendorAuthError(VendorError):
    pass


class VendorTimeoutError(VendorError):
    pass


def fahrenheit_to_celsius(value: float) -> float:
    return round((value - 32.0) * 5.0 / 9.0, 2)


class SensorPushClient:
    """Async client for the SensorPush cloud API."""

    def __init__(
        self,
        email: str = SENSORPUSH_EMAIL,
        password: str = SENSORPUSH_PASSWORD,
        base_url: str = SENSORPUSH_BASE_URL,
        timeout: float = SENSORPUSH_TIMEOUT_SECONDS,
        temperature_unit: str = SENSORPUSH_TEMPERATURE_UNIT,
        batch_size: int = SENSORPUSH_SAMPLES_BATCH_SIZE,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
    ):
        self._email = email
        self._password = password
        self._base_url = base_url.rstrip("/")
        self._temperature_unit = temperature_unit.upper()
        self._batch_size = max(1, batch_size)
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None
        self._clock = clock or SystemClock()
        self._token: str | None = None
        self._token_expiry: datetime | None = None

    async def __aenter__(self) -> "SensorPushClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # --- Auth ---

    async def authenticate(self) -> str:
        """Return a cached access token, running the two-step OAuth handshake when expired."""
        now = self._clock.now()
        if self._token and self._token_expiry and self._token_expiry > now:
            return self._token

        auth = await self._post(
            "/oauth/authorize",
            {"email": self._email, "password": self._password},
            authed=False,
        )
        authorization = auth.get("authorization")
        if not authorization:
            raise VendorAuthError("Failed to authenticate with SensorPush")

        token_body = await self._post(
            "/oauth/accesstoken", {"authorization": authorization}, authed=False
        )
        token = token_body.get("accesstoken")
        if not token:
            raise VendorAuthError("Failed to get SensorPush access token")

        self._token = token
        self._token_expiry = now + timedelta(minutes=TOKEN_LIFETIME_MINUTES)
        logger.info("Authenticated with SensorPush")
        return token

    # --- Inventory ---

    async def list_sensors(self) -> dict[str, SensorInfo]:
        body = await self._post("/devices/sensors", {})
        sensors: dict[str, SensorInfo] = {}
        for external_id, payload in _parse_entries(body, VendorSensorPayload, "sensor"):
            sensors[external_id] = SensorInfo(
                external_id=external_id,
                name=payload.name or f"Sensor {external_id}",
                battery_voltage=payload.battery_voltage,
                last_seen=to_naive_utc(payload.last_seen),
                # Only an explicit false deactivates
                active=payload.active is not False,
            )
        return sensors

    async def list_gateways(self) -> dict[str, GatewayInfo]:
        body = await self._post("/devices/gateways", {})
        gateways: dict[str, GatewayInfo] = {}
        for external_id, payload in _parse_entries(body, VendorGatewayPayload, "gateway"):
            gateways[external_id] = GatewayInfo(
                external_id=external_id,
                name=payload.name or f"Gateway {external_id}",
                last_seen=to_naive_utc(payload.last_seen),
                paired=payload.paired,
            )
        return gateways

    # --- Readings ---

    async def latest_readings(self, sensor_ids: Iterable[str]) -> dict[str, LatestReading]:
        """Fetch the newest sample per sensor id.

        Ids missing from the result had no reading. A batch that times out is
        skipped so its sensors show as not present; if every batch times out the
        whole call fails.
        """
        ids = list(dict.fromkeys(sensor_ids))
        readings: dict[str, LatestReading] = {}
        if not ids:
            return readings

        batches = [ids[i : i + self._batch_size] for i in range(0, len(ids), self._batch_size)]
        timed_out = 0
        for batch in batches:
            try:
                body = await self._post("/samples", {"sensors": batch, "limit": 1})
            except VendorTimeoutError:
                timed_out += 1
                logger.warning(f"Samples request timed out for {len(batch)} sensors")
                continue
            readings.update(self._parse_samples(body))

        if timed_out == len(batches):
            raise VendorTimeoutError("All SensorPush sample requests timed out")
        return readings

    def _parse_samples(self, body: dict[str, Any]) -> dict[str, LatestReading]:
        try:
            samples = VendorSamplesResponse.model_validate(body)
        except ValidationError as exc:
            raise VendorError(f"Malformed samples payload: {exc}") from exc

        readings: dict[str, LatestReading] = {}
        for sensor_id, sensor_samples in samples.sensors.items():
            if not sensor_samples:
                continue
            newest = max(sensor_samples, key=lambda s: to_naive_utc(s.observed))
            temperature = newest.temperature
            if temperature is not None and self._temperature_unit == "F":
                temperature = fahrenheit_to_celsius(temperature)
            readings[sensor_id] = LatestReading(
                sensor_id=sensor_id,
                temperature=temperature,
                humidity=newest.humidity,
                timestamp=to_naive_utc(newest.observed),
            )
        return readings

    # --- Transport ---

    async def _post(
        self, path: str, payload: dict[str, Any], authed: bool = True
    ) -> dict[str, Any]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if authed:
            headers["Authorization"] = await self.authenticate()

        try:
            response = await self._http.post(
                f"{self._base_url}{path}", json=payload, headers=headers
            )
        except httpx.TimeoutException as exc:
            raise VendorTimeoutError(f"SensorPush {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise VendorError(f"SensorPush {path} failed: {exc}") from exc

        if response.status_code in (401, 403):
            self._token = None
            self._token_expiry = None
            raise VendorAuthError(
                f"SensorPush {path} rejected credentials ({response.status_code})"
            )
        if response.status_code >= 400:
            raise VendorError(f"SensorPush {path} returned {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise VendorError(f"SensorPush {path} returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise VendorError(f"SensorPush {path} returned {type(body).__name__}, expected object")
        return body


def _parse_entries(
    body: dict[str, Any],
    model: type[BaseModel],
    kind: str,
) -> Iterator[tuple[str, Any]]:
    """Yield (id, payload) for each well-formed entry of an id-keyed device map."""
    for external_id, raw in body.items():
        try:
            yield external_id, model.model_validate(raw)
        except ValidationError as exc:
            logger.warning(f"Skipping malformed {kind} {external_id}: {exc.error_count()} errors")


async def get_vendor_client():
    """Dependency providing a SensorPush client for one request."""
    async with SensorPushClient() as client:
        yield client
