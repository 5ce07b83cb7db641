"""Write batches collected during a pipeline run."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

SettingValue = str | bool


@dataclass
class SettingsBatch:
    """Pending sets and removals, applied to the store in one commit.

    A key is either set or removed, never both: the last operation wins.
    """

    values: dict[str, SettingValue] = field(default_factory=dict)
    removals: set[str] = field(default_factory=set)

    def set(self, key: str, value: SettingValue) -> None:
        self.removals.discard(key)
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)
        self.removals.add(key)

    def touched_keys(self) -> frozenset[str]:
        return frozenset(self.values) | frozenset(self.removals)

    def merge(self, other: SettingsBatch) -> None:
        """Fold *other* into this batch; *other* wins on overlapping keys."""
        for key in other.removals:
            self.remove(key)
        for key, value in other.values.items():
            self.set(key, value)

    def apply_to(self, current: Mapping[str, SettingValue]) -> dict[str, SettingValue]:
        """Return a new mapping with this batch applied to *current*."""
        result = dict(current)
        for key in self.removals:
            result.pop(key, None)
        result.update(self.values)
        return result

    def __bool__(self) -> bool:
        return bool(self.values or self.removals)
