"""Shared strategy types."""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Protocol

from pyhotguard.models.policy import PolicyDocument
from pyhotguard.state.batch import SettingsBatch


@dataclass(frozen=True)
class StrategyContext:
    """Immutable inputs shared by every strategy in one cycle."""

    policy: PolicyDocument
    device_id: str
    country: str


class Strategy(Protocol):
    """One named unit of the pipeline.

    Implementations read only the :class:`StrategyContext` and write only
    the keys listed in ``owned_keys``.  The built-in strategies subclass
    this explicitly to inherit ``__repr__``; any object with the same shape
    is accepted by the pipeline.
    """

    name: ClassVar[str] = "strategy"
    owned_keys: ClassVar[frozenset[str]] = frozenset()

    @abstractmethod
    def apply(self, context: StrategyContext, batch: SettingsBatch) -> None: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
