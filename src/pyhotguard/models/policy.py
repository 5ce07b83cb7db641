"""Policy document model.

:class:`PolicyDocument` is the full set of tunable gating parameters for
one initialization cycle.  Validation is deliberately forgiving: values
that cannot be parsed fall back to the field default instead of failing,
so a hand-edited policy file can never take the engine down.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from pyhotguard._constants import (
    DEFAULT_BLOCKED_COUNTRIES,
    DEFAULT_DOMAIN_WHITELIST,
    DEFAULT_FAILOVER_ENDPOINT,
    DEFAULT_FAILOVER_PROBABILITY,
)
from pyhotguard.config import parse_bool


def split_list(value: Any) -> list[str]:
    """Split a comma-separated string (or iterable) into trimmed, non-empty items."""
    if value is None:
        return []
    items: Iterable[Any] = value.split(",") if isinstance(value, str) else value
    result: list[str] = []
    for item in items:
        text = str(item).strip()
        if text:
            result.append(text)
    return result


def coerce_probability(value: Any) -> float:
    """Parse *value* as a probability, clamped to ``[0, 1]``.

    Unparsable input (including NaN) yields the default of ``0.5``.
    """
    try:
        probability = float(value)
    except (TypeError, ValueError):
        return DEFAULT_FAILOVER_PROBABILITY
    if math.isnan(probability):
        return DEFAULT_FAILOVER_PROBABILITY
    return min(1.0, max(0.0, probability))


class PolicyDocument(BaseModel):
    """Immutable gating policy.

    Parameters
    ----------
    failover_enabled : bool
        Master switch for failover endpoint selection.
    failover_probability : float
        Share of eligible devices sent to the failover endpoint.
    failover_endpoint : str
        Redundant content-distribution URL.
    blocked_countries : frozenset[str]
        Uppercase 2-letter codes where failover is suppressed.
    device_whitelist : frozenset[str]
        Device ids that always get the failover endpoint.
    domain_whitelist : tuple[str, ...]
        Hosts the downloader may fetch from, in priority order.
    signature_verification_enabled : bool
        Whether bundles must pass signature verification.
    integrity_verification_enabled : bool
        Whether bundles must pass the digest check.
    force_https : bool
        Whether plain-HTTP download URLs are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    failover_enabled: bool = True
    failover_probability: float = DEFAULT_FAILOVER_PROBABILITY
    failover_endpoint: str = DEFAULT_FAILOVER_ENDPOINT
    blocked_countries: frozenset[str] = DEFAULT_BLOCKED_COUNTRIES
    device_whitelist: frozenset[str] = frozenset()
    domain_whitelist: tuple[str, ...] = DEFAULT_DOMAIN_WHITELIST
    signature_verification_enabled: bool = True
    integrity_verification_enabled: bool = True
    force_https: bool = True

    @field_validator(
        "failover_enabled",
        "signature_verification_enabled",
        "integrity_verification_enabled",
        "force_https",
        mode="before",
    )
    @classmethod
    def _parse_flag(cls, value: Any, info: ValidationInfo) -> bool:
        default = cls.model_fields[info.field_name].default
        return parse_bool(value, default)

    @field_validator("failover_probability", mode="before")
    @classmethod
    def _parse_probability(cls, value: Any) -> float:
        return coerce_probability(value)

    @field_validator("failover_endpoint", mode="before")
    @classmethod
    def _parse_endpoint(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_FAILOVER_ENDPOINT
        text = str(value).strip()
        return text or DEFAULT_FAILOVER_ENDPOINT

    @field_validator("blocked_countries", mode="before")
    @classmethod
    def _parse_countries(cls, value: Any) -> frozenset[str]:
        return frozenset(item.upper() for item in split_list(value))

    @field_validator("device_whitelist", mode="before")
    @classmethod
    def _parse_devices(cls, value: Any) -> frozenset[str]:
        return frozenset(split_list(value))

    @field_validator("domain_whitelist", mode="before")
    @classmethod
    def _parse_domains(cls, value: Any) -> tuple[str, ...]:
        return tuple(split_list(value))

    def is_country_blocked(self, country_code: str) -> bool:
        """Case-insensitive membership test against ``blocked_countries``."""
        code = country_code.strip().upper()
        return bool(code) and code in self.blocked_countries

    def is_device_whitelisted(self, device_id: str) -> bool:
        """Whitelist membership; the empty "unknown" id never matches."""
        return bool(device_id) and device_id in self.device_whitelist
