"""Decision strategies, in their fixed evaluation order."""

from __future__ import annotations

import random

from pyhotguard.strategies.base import Strategy, StrategyContext
from pyhotguard.strategies.failover import FailoverDecision, FailoverProtectionStrategy, Sampler, decide_failover
from pyhotguard.strategies.transport import DomainVerificationStrategy, TransportSecurityStrategy
from pyhotguard.strategies.verification import IntegrityCheckStrategy, SignatureVerificationStrategy


def default_strategies(sampler: Sampler = random.random) -> tuple[Strategy, ...]:
    """The fixed pipeline: verification, failover, then URL restrictions."""
    return (
        SignatureVerificationStrategy(),
        IntegrityCheckStrategy(),
        FailoverProtectionStrategy(sampler),
        DomainVerificationStrategy(),
        TransportSecurityStrategy(),
    )


__all__ = [
    "DomainVerificationStrategy",
    "FailoverDecision",
    "FailoverProtectionStrategy",
    "IntegrityCheckStrategy",
    "Sampler",
    "SignatureVerificationStrategy",
    "Strategy",
    "StrategyContext",
    "TransportSecurityStrategy",
    "decide_failover",
    "default_strategies",
]
