"""Per-install device identity."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from pyhotguard._constants import MACHINE_ID_PATHS

_logger = logging.getLogger(__name__)

IdentitySource = Callable[[], str | None]


def read_machine_id(paths: Sequence[str] = MACHINE_ID_PATHS) -> str | None:
    """Return the first non-empty OS machine id, or ``None``."""
    for path in paths:
        try:
            value = Path(path).read_text(encoding="ascii").strip()
        except (OSError, UnicodeDecodeError):
            _logger.debug("Machine id unavailable at %s", path)
            continue
        if value:
            return value
    return None


def mask_device_id(device_id: str) -> str:
    """Shorten a device id for log output."""
    if len(device_id) <= 4:
        return device_id
    return f"{device_id[:4]}…"


class IdentityResolver:
    """Derives the stable device identifier.

    Any failure of the underlying source resolves to ``""``, the
    "unknown identity" sentinel.
    """

    def __init__(self, source: IdentitySource = read_machine_id) -> None:
        self._source = source

    def resolve_device_id(self) -> str:
        try:
            value = self._source()
        except Exception:
            _logger.warning("Failed to get device ID", exc_info=True)
            return ""
        if not isinstance(value, str):
            return ""
        device_id = value.strip()
        if device_id:
            _logger.debug("Device ID: %s", mask_device_id(device_id))
        return device_id
