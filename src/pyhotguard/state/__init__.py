"""Settings store layer.

The settings snapshot is the only externally observable output of an
initialization cycle.  Strategies never touch the store directly; their
writes are collected into one :class:`SettingsBatch` and committed at once.
"""

from pyhotguard.state.batch import SettingsBatch, SettingValue
from pyhotguard.state.keys import SettingsKey
from pyhotguard.state.store import FileSettingsStore, MemorySettingsStore, SettingsStore

__all__ = [
    "FileSettingsStore",
    "MemorySettingsStore",
    "SettingValue",
    "SettingsBatch",
    "SettingsKey",
    "SettingsStore",
]
