"""Failover endpoint selection."""

from __future__ import annotations

import enum
import logging
import random
from collections.abc import Callable

from pyhotguard.geo import is_blocked
from pyhotguard.identity import mask_device_id
from pyhotguard.state.batch import SettingsBatch
from pyhotguard.state.keys import SettingsKey
from pyhotguard.strategies.base import Strategy, StrategyContext

_logger = logging.getLogger(__name__)

Sampler = Callable[[], float]
"""Source of uniform draws in ``[0, 1)``."""


class FailoverDecision(enum.Enum):
    DISABLED = "disabled"
    WHITELISTED = "whitelisted"
    GEO_BLOCKED = "geo_blocked"
    SAMPLED_IN = "sampled_in"
    SAMPLED_OUT = "sampled_out"

    @property
    def use_failover(self) -> bool:
        return self in (FailoverDecision.WHITELISTED, FailoverDecision.SAMPLED_IN)


def decide_failover(context: StrategyContext, sampler: Sampler) -> FailoverDecision:
    """Evaluate the failover rules in order; the first matching rule wins.

    1. failover disabled -> never;
    2. whitelisted device -> always, bypassing geo-block and probability;
    3. blocked country -> never;
    4. otherwise one draw against ``failover_probability``.
    """
    policy = context.policy
    if not policy.failover_enabled:
        return FailoverDecision.DISABLED
    if policy.is_device_whitelisted(context.device_id):
        return FailoverDecision.WHITELISTED
    if is_blocked(context.country, policy):
        return FailoverDecision.GEO_BLOCKED
    if sampler() < policy.failover_probability:
        return FailoverDecision.SAMPLED_IN
    return FailoverDecision.SAMPLED_OUT


class FailoverProtectionStrategy(Strategy):
    """Spreads load between the primary and the failover endpoint.

    The draw is a static per-cycle coin flip, not adaptive circuit breaking.
    """

    name = "failover_protection"
    owned_keys = frozenset({SettingsKey.USE_FAILOVER_ENDPOINT, SettingsKey.FAILOVER_ENDPOINT_URL})

    def __init__(self, sampler: Sampler = random.random) -> None:
        self._sampler = sampler

    def apply(self, context: StrategyContext, batch: SettingsBatch) -> None:
        decision = decide_failover(context, self._sampler)
        _logger.debug(
            "Failover decision %s (device=%s country=%s)",
            decision.value,
            mask_device_id(context.device_id) or "<unknown>",
            context.country or "<unknown>",
        )
        if decision.use_failover:
            batch.set(SettingsKey.USE_FAILOVER_ENDPOINT, True)
            batch.set(SettingsKey.FAILOVER_ENDPOINT_URL, context.policy.failover_endpoint)
        else:
            batch.set(SettingsKey.USE_FAILOVER_ENDPOINT, False)
            batch.remove(SettingsKey.FAILOVER_ENDPOINT_URL)
