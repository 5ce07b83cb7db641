"""Engine configuration for pyhotguard."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyhotguard._constants import IP_GEOLOCATION_TIMEOUT, IP_GEOLOCATION_URL, REMOTE_POLICY_TIMEOUT
from pyhotguard.exceptions import GuardConfigError

_TRUE_VALUES = frozenset({"1", "true", "yes", "y", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "n", "off"})


def parse_bool(value: Any, default: bool) -> bool:
    """Interpret a loosely-typed flag, keeping *default* for anything unrecognised."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class GuardConfig:
    """Engine configuration.

    Parameters
    ----------
    policy_file : str or None
        Path of the packaged policy override file (``key=value`` text).
        ``None`` means only the bundled defaults are used.
    remote_policy_url : str or None
        URL of the remote JSON policy document. ``None`` skips the remote
        fetch unless a ``configUrl`` override was persisted in the
        settings store.
    remote_policy_timeout : float
        Seconds allowed for the remote policy GET.
    ip_geolocation_enabled : bool
        Fall back to an IP geolocation lookup when no local country
        signal is available. Off by default since it costs a network
        round trip.
    ip_geolocation_url : str
        Plain-text IP geolocation endpoint.
    ip_geolocation_timeout : float
        Seconds allowed for the IP geolocation GET.
    settings_path : str or None
        JSON file backing the settings store. ``None`` keeps settings in
        memory for the lifetime of the engine.
    channel : str
        Build channel / variant, injected at build or startup time.
        Sent in the ``User-Agent`` header.
    """

    policy_file: str | None = None
    remote_policy_url: str | None = None
    remote_policy_timeout: float = REMOTE_POLICY_TIMEOUT
    ip_geolocation_enabled: bool = False
    ip_geolocation_url: str = IP_GEOLOCATION_URL
    ip_geolocation_timeout: float = IP_GEOLOCATION_TIMEOUT
    settings_path: str | None = None
    channel: str = "release"

    def validate(self) -> None:
        """Raise :class:`GuardConfigError` when a value cannot work."""
        if self.remote_policy_timeout <= 0:
            raise GuardConfigError(f"remote_policy_timeout must be positive, got {self.remote_policy_timeout}")
        if self.ip_geolocation_timeout <= 0:
            raise GuardConfigError(f"ip_geolocation_timeout must be positive, got {self.ip_geolocation_timeout}")
        if not self.channel.strip():
            raise GuardConfigError("channel must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> GuardConfig:
        """Create configuration from ``HOTGUARD_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        GuardConfig
            Populated configuration.

        Raises
        ------
        GuardConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "HOTGUARD_POLICY_FILE": "policy_file",
            "HOTGUARD_REMOTE_POLICY_URL": "remote_policy_url",
            "HOTGUARD_IP_GEOLOCATION_URL": "ip_geolocation_url",
            "HOTGUARD_SETTINGS_PATH": "settings_path",
            "HOTGUARD_CHANNEL": "channel",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # timeouts are numeric, handle separately
        for env_key, field_name in (
            ("HOTGUARD_REMOTE_POLICY_TIMEOUT", "remote_policy_timeout"),
            ("HOTGUARD_IP_GEOLOCATION_TIMEOUT", "ip_geolocation_timeout"),
        ):
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise GuardConfigError(f"{env_key} must be a number, got {val!r}") from exc

        if "ip_geolocation_enabled" not in overrides:
            config_kwargs["ip_geolocation_enabled"] = parse_bool(env.get("HOTGUARD_IP_GEOLOCATION_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
