"""Keys written to the settings store and read by the downloader."""

from __future__ import annotations

from enum import StrEnum


class SettingsKey(StrEnum):
    SIGNATURE_VERIFICATION_ENABLED = "signatureVerificationEnabled"
    INTEGRITY_VERIFICATION_ENABLED = "integrityVerificationEnabled"
    INTEGRITY_STRICT_MODE = "integrityStrictMode"
    USE_FAILOVER_ENDPOINT = "useFailoverEndpoint"
    FAILOVER_ENDPOINT_URL = "failoverEndpointUrl"
    URL_WHITELIST = "urlWhitelist"
    FORCE_HTTPS = "forceHttps"
    CERTIFICATE_PINNING_ENABLED = "certificatePinningEnabled"
    # Engine-owned, not written by any strategy.
    CONFIG_URL = "configUrl"
