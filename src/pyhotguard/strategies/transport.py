"""Download URL restrictions: domain whitelist and transport security."""

from __future__ import annotations

from pyhotguard.state.batch import SettingsBatch
from pyhotguard.state.keys import SettingsKey
from pyhotguard.strategies.base import Strategy, StrategyContext


class DomainVerificationStrategy(Strategy):
    """Publishes the host whitelist, order preserved.

    Stored comma-joined; an empty string means "no restriction".
    """

    name = "domain_verification"
    owned_keys = frozenset({SettingsKey.URL_WHITELIST})

    def apply(self, context: StrategyContext, batch: SettingsBatch) -> None:
        batch.set(SettingsKey.URL_WHITELIST, ",".join(context.policy.domain_whitelist))


class TransportSecurityStrategy(Strategy):
    name = "transport_security"
    owned_keys = frozenset({SettingsKey.FORCE_HTTPS, SettingsKey.CERTIFICATE_PINNING_ENABLED})

    def apply(self, context: StrategyContext, batch: SettingsBatch) -> None:
        batch.set(SettingsKey.FORCE_HTTPS, context.policy.force_https)
        # TODO: publish pin hashes once the downloader can enforce them.
        batch.set(SettingsKey.CERTIFICATE_PINNING_ENABLED, False)
