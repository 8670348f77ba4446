"""Threshold registry: location category -> acceptable ranges."""

from collections.abc import Mapping
from dataclasses import dataclass

from coldwatch.config import LOW_BATTERY_VOLTAGE

DEFAULT_LOCATION = "other"


@dataclass(frozen=True)
class ThresholdProfile:
    """Acceptable ranges for one location category. Temperatures in °C, humidity in %RH."""

    min_temp: float
    max_temp: float
    min_humidity: float | None = None
    max_humidity: float | None = None
    min_battery_voltage: float = LOW_BATTERY_VOLTAGE


THRESHOLD_REGISTRY: dict[str, ThresholdProfile] = {
    "refrigerator": ThresholdProfile(min_temp=2.0, max_temp=8.0, min_humidity=45, max_humidity=75),
    "freezer": ThresholdProfile(min_temp=-25.0, max_temp=-15.0, min_humidity=45, max_humidity=75),
    "storage": ThresholdProfile(min_temp=15.0, max_temp=25.0, min_humidity=35, max_humidity=65),
    "other": ThresholdProfile(min_temp=15.0, max_temp=25.0, min_humidity=35, max_humidity=65),
}


class ThresholdRegistry:
    """Lookup with optional per-tenant overrides keyed by (tenant_key, location)."""

    def __init__(
        self,
        profiles: Mapping[str, ThresholdProfile] | None = None,
        tenant_overrides: Mapping[tuple[str, str], ThresholdProfile] | None = None,
    ):
        self._profiles = dict(profiles or THRESHOLD_REGISTRY)
        self._overrides = dict(tenant_overrides or {})

    def thresholds_for(self, location_type: str, tenant_key: str | None = None) -> ThresholdProfile:
        if tenant_key is not None:
            override = self._overrides.get((tenant_key, location_type))
            if override is not None:
                return override
        return self._profiles.get(location_type) or self._profiles[DEFAULT_LOCATION]


default_registry = ThresholdRegistry()


def thresholds_for(location_type: str, tenant_key: str | None = None) -> ThresholdProfile:
    """Get the threshold profile for a location, falling back to the 'other' profile."""
    return default_registry.thresholds_for(location_type, tenant_key)
