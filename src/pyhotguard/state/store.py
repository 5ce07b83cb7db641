"""Settings store implementations.

Both stores publish a commit by swapping one reference, so a reader sees
either the whole previous snapshot or the whole new one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Protocol

from pyhotguard.exceptions import GuardStoreError
from pyhotguard.state.batch import SettingsBatch, SettingValue

_logger = logging.getLogger(__name__)


class SettingsStore(Protocol):
    """Flat string-keyed settings capability read by the downloader."""

    def snapshot(self) -> dict[str, SettingValue]:
        ...

    def get(self, key: str, default: SettingValue | None = None) -> SettingValue | None:
        ...

    def commit(self, batch: SettingsBatch) -> None:
        ...


class MemorySettingsStore:
    """In-process store; commits are copy-on-write under a lock."""

    def __init__(self, initial: Mapping[str, SettingValue] | None = None) -> None:
        self._lock = threading.Lock()
        self._data: Mapping[str, SettingValue] = MappingProxyType(dict(initial or {}))

    def snapshot(self) -> dict[str, SettingValue]:
        return dict(self._data)

    def get(self, key: str, default: SettingValue | None = None) -> SettingValue | None:
        return self._data.get(key, default)

    def commit(self, batch: SettingsBatch) -> None:
        if not batch:
            return
        with self._lock:
            self._data = MappingProxyType(batch.apply_to(self._data))


def _read_settings_file(path: Path) -> dict[str, SettingValue]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError):
        _logger.warning("Settings file %s unreadable, starting empty", path, exc_info=True)
        return {}
    if not isinstance(raw, dict):
        _logger.warning("Settings file %s is not a JSON object, starting empty", path)
        return {}
    return {str(k): v for k, v in raw.items() if isinstance(v, (str, bool))}


class FileSettingsStore:
    """JSON-file store that survives process restarts.

    Commits write a sibling temp file and ``os.replace`` it over the
    target, so other processes reading the file never see a partial write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._data: Mapping[str, SettingValue] = MappingProxyType(_read_settings_file(self._path))

    @property
    def path(self) -> Path:
        return self._path

    def snapshot(self) -> dict[str, SettingValue]:
        return dict(self._data)

    def get(self, key: str, default: SettingValue | None = None) -> SettingValue | None:
        return self._data.get(key, default)

    def commit(self, batch: SettingsBatch) -> None:
        """Persist *batch* atomically.

        Raises
        ------
        GuardStoreError
            If the file cannot be written; the previous snapshot stays.
        """
        if not batch:
            return
        with self._lock:
            updated = batch.apply_to(self._data)
            self._write(updated)
            self._data = MappingProxyType(updated)

    def _write(self, data: dict[str, SettingValue]) -> None:
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                json.dump(data, handle, indent=2, sort_keys=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise GuardStoreError(f"Failed to write settings to {self._path}: {exc}") from exc
        _logger.debug("Settings written to %s (%d keys)", self._path, len(data))
