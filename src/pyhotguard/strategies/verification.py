"""Bundle verification strategies: signature and integrity."""

from __future__ import annotations

from pyhotguard.state.batch import SettingsBatch
from pyhotguard.state.keys import SettingsKey
from pyhotguard.strategies.base import Strategy, StrategyContext


class SignatureVerificationStrategy(Strategy):
    name = "signature_verification"
    owned_keys = frozenset({SettingsKey.SIGNATURE_VERIFICATION_ENABLED})

    def apply(self, context: StrategyContext, batch: SettingsBatch) -> None:
        batch.set(SettingsKey.SIGNATURE_VERIFICATION_ENABLED, context.policy.signature_verification_enabled)


class IntegrityCheckStrategy(Strategy):
    """Digest check flag; strict mode is always on."""

    name = "integrity_check"
    owned_keys = frozenset({SettingsKey.INTEGRITY_VERIFICATION_ENABLED, SettingsKey.INTEGRITY_STRICT_MODE})

    def apply(self, context: StrategyContext, batch: SettingsBatch) -> None:
        batch.set(SettingsKey.INTEGRITY_VERIFICATION_ENABLED, context.policy.integrity_verification_enabled)
        batch.set(SettingsKey.INTEGRITY_STRICT_MODE, True)
