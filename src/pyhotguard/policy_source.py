"""Local policy source: bundled defaults layered with a packaged override file."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from pyhotguard.models.policy import PolicyDocument

_logger = logging.getLogger(__name__)

# Packaged-file keys mapped onto PolicyDocument fields.
POLICY_FILE_KEYS: dict[str, str] = {
    "failover.enabled": "failover_enabled",
    "failover.probability": "failover_probability",
    "failover.endpoint": "failover_endpoint",
    "geo.blocked.countries": "blocked_countries",
    "device.whitelist": "device_whitelist",
    "domain.whitelist": "domain_whitelist",
    "signature.verification.enabled": "signature_verification_enabled",
    "md5.verification.enabled": "integrity_verification_enabled",
    "force.https": "force_https",
}


_WHITESPACE = " \t\f"
_SEPARATORS = "=:"
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def _logical_lines(text: str) -> Iterator[str]:
    """Join continuation lines (odd number of trailing backslashes)."""
    pending: str | None = None
    for raw_line in text.splitlines():
        line = raw_line.lstrip(_WHITESPACE)
        if pending is None and (not line or line[0] in "#!"):
            continue
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending = (pending or "") + line[:-1]
            continue
        yield (pending or "") + line
        pending = None
    if pending:
        yield pending


def _unescape(text: str) -> str:
    if "\\" not in text:
        return text
    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        i += 1
        if i >= len(text):
            break
        escaped = text[i]
        if escaped == "u":
            digits = text[i + 1 : i + 5]
            if len(digits) != 4 or not set(digits) <= _HEX_DIGITS:
                raise ValueError(f"Malformed \\uxxxx encoding: {text[i - 1 : i + 5]!r}")
            out.append(chr(int(digits, 16)))
            i += 5
            continue
        out.append(_ESCAPES.get(escaped, escaped))
        i += 1
    return "".join(out)


def _split_entry(line: str) -> tuple[str, str]:
    end = 0
    while end < len(line):
        ch = line[end]
        if ch == "\\":
            end += 2
            continue
        if ch in _SEPARATORS or ch in _WHITESPACE:
            break
        end += 1
    end = min(end, len(line))
    start = end
    while start < len(line) and line[start] in _WHITESPACE:
        start += 1
    if start < len(line) and line[start] in _SEPARATORS:
        start += 1
    while start < len(line) and line[start] in _WHITESPACE:
        start += 1
    return _unescape(line[:end]), _unescape(line[start:])


def parse_properties(text: str) -> dict[str, str]:
    """Parse ``.properties`` text as written by Java tooling.

    The key ends at the first unescaped ``=``, ``:`` or whitespace.  Lines
    starting with ``#`` or ``!`` are comments, a trailing ``\\`` continues
    the value on the next line, and ``\\uXXXX``, ``\\t``, ``\\:`` style
    escapes are decoded.  Later duplicates win.

    Raises
    ------
    ValueError
        On a malformed ``\\uXXXX`` escape.
    """
    properties: dict[str, str] = {}
    for line in _logical_lines(text):
        key, value = _split_entry(line)
        if key:
            properties[key] = value.strip()
    return properties


def policy_from_properties(properties: dict[str, str]) -> PolicyDocument:
    """Build a document from parsed properties; unknown keys are ignored."""
    fields: dict[str, Any] = {}
    for key, field_name in POLICY_FILE_KEYS.items():
        if key in properties:
            fields[field_name] = properties[key]
    unknown = sorted(set(properties) - set(POLICY_FILE_KEYS))
    if unknown:
        _logger.debug("Ignoring unknown policy keys: %s", ", ".join(unknown))
    return PolicyDocument(**fields)


class PolicySource:
    """Loads the local :class:`PolicyDocument`.

    The bundled defaults live on the model itself; the optional packaged
    file overrides them key by key.
    """

    def __init__(self, policy_file: str | Path | None = None) -> None:
        self._policy_file = Path(policy_file) if policy_file is not None else None

    @property
    def policy_file(self) -> Path | None:
        return self._policy_file

    def load(self) -> PolicyDocument:
        """Return the local policy.  Never raises; falls back to defaults."""
        if self._policy_file is None:
            _logger.debug("No packaged policy file configured, using defaults")
            return PolicyDocument()
        try:
            text = self._policy_file.read_text(encoding="utf-8")
            policy = policy_from_properties(parse_properties(text))
        except Exception:
            _logger.warning("Failed to load policy file %s, using defaults", self._policy_file, exc_info=True)
            return PolicyDocument()
        _logger.info("Policy loaded from %s", self._policy_file)
        return policy
