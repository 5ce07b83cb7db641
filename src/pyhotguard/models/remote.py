"""Remote policy wire document.

The remote endpoint serves a small JSON object::

    {"enabled": true, "endpoint": "https://...", "blocked_countries": ["JP"]}

Publishers may also send the extended keys (``probability``,
``device_whitelist`` ...).  Anything else is ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from pyhotguard.models.policy import PolicyDocument


class RemotePolicyDocument(BaseModel):
    """Permissive parse of the remote JSON policy.

    Every field is optional; :meth:`to_policy` fills the gaps with the
    bundled defaults, so the result replaces the local document wholesale.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    enabled: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("enabled", "failover_enabled"),
    )
    endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices("endpoint", "failover_endpoint"),
    )
    blocked_countries: list[str] | None = None
    probability: float | str | None = Field(
        default=None,
        validation_alias=AliasChoices("probability", "failover_probability"),
    )
    device_whitelist: list[str] | None = None
    domain_whitelist: list[str] | None = None
    signature_verification_enabled: bool | None = None
    integrity_verification_enabled: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("md5_verification_enabled", "integrity_verification_enabled"),
    )
    force_https: bool | None = None

    def to_policy(self) -> PolicyDocument:
        """Build a full :class:`PolicyDocument`; absent fields keep their defaults."""
        mapping: dict[str, Any] = {
            "failover_enabled": self.enabled,
            "failover_endpoint": self.endpoint,
            "blocked_countries": self.blocked_countries,
            "failover_probability": self.probability,
            "device_whitelist": self.device_whitelist,
            "domain_whitelist": self.domain_whitelist,
            "signature_verification_enabled": self.signature_verification_enabled,
            "integrity_verification_enabled": self.integrity_verification_enabled,
            "force_https": self.force_https,
        }
        return PolicyDocument(**{key: value for key, value in mapping.items() if value is not None})
