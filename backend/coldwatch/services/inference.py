"""Tenant inference: map vendor device names to pharmacies.

Rules are ordered matcher strategies; the first one that returns a tenant wins.
A matcher that hits more than one tenant abstains, and when no matcher answers
the device is unresolved. Nothing here ever guesses.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

__all__ = [
    "Tenant",
    "GatewayCandidate",
    "TenantMatcher",
    "GatewayMatcher",
    "ShortCodeMatcher",
    "FullNameMatcher",
    "KeywordAliasMatcher",
    "GatewayNameMatcher",
    "SharedKeywordMatcher",
    "SameTenantMatcher",
    "TenantInference",
]

# Legacy vendor naming: short code in the device name -> pharmacy code
DEFAULT_SHORT_CODES: dict[str, str] = {
    "gsp": "specialty",
    "gfp": "family",
    "gpp": "parlin",
    "gop": "outpatient",
}

# Keywords used in older device names -> pharmacy code
DEFAULT_KEYWORD_ALIASES: dict[str, str] = {
    "parlin": "parlin",
    "specialty": "specialty",
    "family": "family",
    "outpatient": "outpatient",
}


@dataclass(frozen=True)
class Tenant:
    id: int
    code: str
    name: str


@dataclass(frozen=True)
class GatewayCandidate:
    external_id: str
    name: str
    tenant_id: int | None = None


class TenantMatcher(Protocol):
    def match(self, name: str) -> int | None: ...


class GatewayMatcher(Protocol):
    def match(
        self, sensor_name: str, gateways: Sequence[GatewayCandidate]
    ) -> GatewayCandidate | None: ...


def _single(hits: Iterable[int]) -> int | None:
    distinct = set(hits)
    if len(distinct) == 1:
        return distinct.pop()
    return None


def _single_gateway(hits: Iterable[GatewayCandidate]) -> GatewayCandidate | None:
    by_id = {g.external_id: g for g in hits}
    if len(by_id) == 1:
        return next(iter(by_id.values()))
    return None


# --- Tenant rules ---


class ShortCodeMatcher:
    """Tenant code, or a legacy short code for it, embedded in the device name."""

    def __init__(self, tenants: Sequence[Tenant], short_codes: Mapping[str, str] | None = None):
        self._tenants = tenants
        self._short_codes = {
            k.lower(): v.lower() for k, v in (short_codes or DEFAULT_SHORT_CODES).items()
        }

    def match(self, name: str) -> int | None:
        lowered = name.lower()
        hits = []
        for tenant in self._tenants:
            code = tenant.code.lower()
            if code and code in lowered:
                hits.append(tenant.id)
                continue
            if any(
                target == code and short in lowered for short, target in self._short_codes.items()
            ):
                hits.append(tenant.id)
        return _single(hits)


class FullNameMatcher:
    """Tenant's full name contained in the device name."""

    def __init__(self, tenants: Sequence[Tenant]):
        self._tenants = tenants

    def match(self, name: str) -> int | None:
        lowered = name.lower()
        return _single(t.id for t in self._tenants if t.name and t.name.lower() in lowered)


class KeywordAliasMatcher:
    """Legacy keywords mapped to tenant codes."""

    def __init__(self, tenants: Sequence[Tenant], aliases: Mapping[str, str] | None = None):
        self._by_code = {t.code.lower(): t.id for t in tenants}
        self._aliases = {
            k.lower(): v.lower() for k, v in (aliases or DEFAULT_KEYWORD_ALIASES).items()
        }

    def match(self, name: str) -> int | None:
        lowered = name.lower()
        return _single(
            self._by_code[code]
            for keyword, code in self._aliases.items()
            if keyword in lowered and code in self._by_code
        )


# --- Gateway rules ---


class GatewayNameMatcher:
    """Gateway name inside the sensor name, or the sensor's first word inside the gateway name."""

    def match(
        self, sensor_name: str, gateways: Sequence[GatewayCandidate]
    ) -> GatewayCandidate | None:
        lowered = sensor_name.lower()
        words = lowered.split()
        first_word = words[0] if words else ""
        return _single_gateway(
            g
            for g in gateways
            if (g.name and g.name.lower() in lowered)
            or (first_word and first_word in g.name.lower())
        )


class SharedKeywordMatcher:
    """A legacy location keyword present in both names."""

    def __init__(self, keywords: Iterable[str] | None = None):
        self._keywords = [k.lower() for k in (keywords or DEFAULT_KEYWORD_ALIASES)]

    def match(
        self, sensor_name: str, gateways: Sequence[GatewayCandidate]
    ) -> GatewayCandidate | None:
        lowered = sensor_name.lower()
        keywords = [k for k in self._keywords if k in lowered]
        return _single_gateway(
            g for g in gateways if any(k in g.name.lower() for k in keywords)
        )


class SameTenantMatcher:
    """The only gateway owned by the tenant the sensor name resolves to."""

    def __init__(self, inference: "TenantInference"):
        self._inference = inference

    def match(
        self, sensor_name: str, gateways: Sequence[GatewayCandidate]
    ) -> GatewayCandidate | None:
        tenant_id = self._inference.infer_tenant(sensor_name)
        if tenant_id is None:
            return None
        return _single_gateway(g for g in gateways if g.tenant_id == tenant_id)


class TenantInference:
    """Ordered-heuristic resolution of device names to tenants and sensors to gateways."""

    def __init__(
        self,
        tenant_matchers: Sequence[TenantMatcher],
        gateway_matchers: Sequence[GatewayMatcher] | None = None,
        gateway_keywords: Iterable[str] | None = None,
    ):
        self.tenant_matchers = list(tenant_matchers)
        if gateway_matchers is None:
            gateway_matchers = [
                GatewayNameMatcher(),
                SharedKeywordMatcher(gateway_keywords),
                SameTenantMatcher(self),
            ]
        self.gateway_matchers = list(gateway_matchers)

    @classmethod
    def from_tenants(
        cls,
        tenants: Sequence[Tenant],
        short_codes: Mapping[str, str] | None = None,
        aliases: Mapping[str, str] | None = None,
    ) -> "TenantInference":
        """Build the default rule chain: short codes, full names, keyword aliases."""
        return cls(
            [
                ShortCodeMatcher(tenants, short_codes),
                FullNameMatcher(tenants),
                KeywordAliasMatcher(tenants, aliases),
            ],
            gateway_keywords=(aliases or DEFAULT_KEYWORD_ALIASES).keys(),
        )

    def infer_tenant(self, device_name: str) -> int | None:
        """Return the tenant id for a device name, or None when unresolved."""
        for matcher in self.tenant_matchers:
            tenant_id = matcher.match(device_name)
            if tenant_id is not None:
                logger.debug(f"{type(matcher).__name__} matched '{device_name}' -> {tenant_id}")
                return tenant_id
        return None

    def infer_gateway_for_sensor(
        self,
        sensor_name: str,
        candidate_gateways: Sequence[GatewayCandidate],
    ) -> GatewayCandidate | None:
        """Pick the gateway a sensor reports through, or None when it cannot be told apart."""
        if not candidate_gateways:
            return None
        for matcher in self.gateway_matchers:
            gateway = matcher.match(sensor_name, candidate_gateways)
            if gateway is not None:
                return gateway
        if len(candidate_gateways) == 1:
            return candidate_gateways[0]
        return None
