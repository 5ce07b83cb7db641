"""Strategy pipeline orchestration.

Each strategy writes into its own scratch batch.  A strategy that raises,
or touches a key it does not own, contributes nothing; the others are
unaffected.  The surviving writes are merged and committed in one go.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field

from pyhotguard.exceptions import GuardConfigError, GuardStrategyError
from pyhotguard.state.batch import SettingsBatch
from pyhotguard.state.store import SettingsStore
from pyhotguard.strategies import Sampler, Strategy, StrategyContext, default_strategies

_logger = logging.getLogger(__name__)


@dataclass
class PipelineOutcome:
    """Result of evaluating every strategy once."""

    batch: SettingsBatch = field(default_factory=SettingsBatch)
    failed: list[str] = field(default_factory=list)


def _check_disjoint(strategies: Sequence[Strategy]) -> None:
    seen: dict[str, str] = {}
    for strategy in strategies:
        for key in strategy.owned_keys:
            owner = seen.get(key)
            if owner is not None:
                raise GuardConfigError(f"Key {key!r} owned by both {owner} and {strategy.name}")
            seen[key] = strategy.name


class StrategyPipeline:
    """Runs the strategies in order against one immutable context."""

    def __init__(
        self,
        *,
        sampler: Sampler = random.random,
        strategies: Sequence[Strategy] | None = None,
    ) -> None:
        self._strategies: tuple[Strategy, ...] = (
            tuple(strategies) if strategies is not None else default_strategies(sampler)
        )
        _check_disjoint(self._strategies)

    @property
    def strategies(self) -> tuple[Strategy, ...]:
        return self._strategies

    def evaluate(self, context: StrategyContext) -> PipelineOutcome:
        """Collect every strategy's writes without touching any store."""
        outcome = PipelineOutcome()
        for strategy in self._strategies:
            scratch = SettingsBatch()
            try:
                strategy.apply(context, scratch)
                foreign = scratch.touched_keys() - strategy.owned_keys
                if foreign:
                    raise GuardStrategyError(
                        f"{strategy.name} wrote keys it does not own: {sorted(foreign)}",
                        strategy=strategy.name,
                    )
            except Exception:
                _logger.error("Strategy %s failed, keeping previous values", strategy.name, exc_info=True)
                outcome.failed.append(strategy.name)
                continue
            outcome.batch.merge(scratch)
        return outcome

    def run(self, context: StrategyContext, store: SettingsStore) -> PipelineOutcome:
        """Evaluate and commit the whole batch atomically."""
        outcome = self.evaluate(context)
        store.commit(outcome.batch)
        return outcome
