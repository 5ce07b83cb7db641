"""Country resolution from local device signals, with an explicit IP fallback."""

from __future__ import annotations

import locale
import logging
import os
from collections.abc import Callable

from pyhotguard._constants import IP_GEOLOCATION_TIMEOUT, IP_GEOLOCATION_URL
from pyhotguard._transport import Transport
from pyhotguard.exceptions import GuardTransportError
from pyhotguard.models.policy import PolicyDocument

_logger = logging.getLogger(__name__)

CountrySource = Callable[[], str | None]

_LOCALE_ENV_VARS = ("LC_ALL", "LC_MESSAGES", "LANG")


def normalize_country_code(value: object) -> str:
    """Return *value* as an uppercase ISO 3166-1 alpha-2 code, or ``""``."""
    if not isinstance(value, str):
        return ""
    code = value.strip().upper()
    if len(code) == 2 and code.isascii() and code.isalpha():
        return code
    return ""


def region_from_locale_name(name: str | None) -> str | None:
    """Extract the region part of a locale name (``"ja_JP.UTF-8"`` -> ``"JP"``)."""
    if not name:
        return None
    base = name.split(".", 1)[0].split("@", 1)[0]
    for separator in ("_", "-"):
        if separator in base:
            return base.split(separator, 1)[1]
    return None


def default_locale_country() -> str | None:
    """Region of the process locale, falling back to the locale env vars."""
    language_code, _encoding = locale.getlocale()
    region = region_from_locale_name(language_code)
    if region:
        return region
    for var in _LOCALE_ENV_VARS:
        region = region_from_locale_name(os.environ.get(var))
        if region:
            return region
    return None


def _no_signal() -> str | None:
    return None


def is_blocked(country_code: str, policy: PolicyDocument) -> bool:
    """True iff the code is known and in the policy's blocked list.

    An undeterminable country (``""``) is an allow decision.
    """
    if not country_code:
        return False
    blocked = policy.is_country_blocked(country_code)
    if blocked:
        _logger.info("Country %s is in blocked list, failover disabled", country_code)
    return blocked


class GeoResolver:
    """Resolves the device's current country.

    Local sources are consulted in priority order: SIM card, network
    operator, device locale.  Hosts without telephony simply leave the
    first two unset.  Results are never cached.
    """

    def __init__(
        self,
        *,
        sim_country: CountrySource = _no_signal,
        network_country: CountrySource = _no_signal,
        locale_country: CountrySource = default_locale_country,
    ) -> None:
        self._sources: tuple[tuple[str, CountrySource], ...] = (
            ("SIM", sim_country),
            ("network", network_country),
            ("locale", locale_country),
        )

    def resolve_country(self) -> str:
        """First valid code from the local chain, or ``""``."""
        for label, source in self._sources:
            try:
                raw = source()
            except Exception:
                _logger.warning("Failed to get %s country", label, exc_info=True)
                continue
            code = normalize_country_code(raw)
            if code:
                _logger.info("Country detected from %s: %s", label, code)
                return code
            if raw:
                _logger.debug("Rejected %s country value %r", label, raw)
        _logger.info("No local country info")
        return ""

    async def lookup_country_from_ip(
        self,
        transport: Transport,
        *,
        url: str = IP_GEOLOCATION_URL,
        timeout: float = IP_GEOLOCATION_TIMEOUT,
    ) -> str:
        """Blocking network lookup; only call it from the background cycle."""
        try:
            body = await transport.get_text(url, timeout=timeout)
        except GuardTransportError as exc:
            _logger.warning("IP-based geo detection failed: %s", exc)
            return ""
        lines = body.strip().splitlines()
        code = normalize_country_code(lines[0]) if lines else ""
        if code:
            _logger.info("Country detected from IP: %s", code)
        else:
            _logger.warning("IP-based geo detection returned malformed body: %r", body[:64])
        return code
