from __future__ import annotations

import pytest

from pyhotguard.exceptions import GuardTransportError
from pyhotguard.geo import GeoResolver, is_blocked, normalize_country_code, region_from_locale_name
from pyhotguard.models.policy import PolicyDocument


class _FakeTransport:
    def __init__(self, body: str = "", error: GuardTransportError | None = None) -> None:
        self._body = body
        self._error = error
        self.calls: list[tuple[str, float]] = []

    async def get_text(self, url: str, *, timeout: float) -> str:
        self.calls.append((url, timeout))
        if self._error is not None:
            raise self._error
        return self._body


def _resolver(sim: object = None, network: object = None, loc: object = None) -> GeoResolver:
    return GeoResolver(
        sim_country=lambda: sim,  # type: ignore[arg-type, return-value]
        network_country=lambda: network,  # type: ignore[arg-type, return-value]
        locale_country=lambda: loc,  # type: ignore[arg-type, return-value]
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("jp", "JP"),
        (" us ", "US"),
        ("JPN", ""),
        ("j", ""),
        ("1A", ""),
        ("", ""),
        (None, ""),
        (42, ""),
    ],
)
def test_normalize_country_code(raw: object, expected: str) -> None:
    assert normalize_country_code(raw) == expected


def test_sim_country_has_priority() -> None:
    assert _resolver(sim="tw", network="US", loc="DE").resolve_country() == "TW"


def test_falls_through_to_network_then_locale() -> None:
    assert _resolver(sim=None, network="us", loc="DE").resolve_country() == "US"
    assert _resolver(sim="", network=None, loc="de").resolve_country() == "DE"


def test_garbage_values_are_skipped() -> None:
    assert _resolver(sim="JPN", network="??", loc="fr").resolve_country() == "FR"


def test_failing_source_is_no_signal() -> None:
    def broken() -> str:
        raise RuntimeError("telephony service unavailable")

    resolver = GeoResolver(sim_country=broken, network_country=lambda: "kr", locale_country=lambda: None)
    assert resolver.resolve_country() == "KR"


def test_all_sources_exhausted_returns_empty() -> None:
    assert _resolver(sim=None, network="", loc="XYZ").resolve_country() == ""


def test_region_from_locale_name() -> None:
    assert region_from_locale_name("ja_JP.UTF-8") == "JP"
    assert region_from_locale_name("en-GB") == "GB"
    assert region_from_locale_name("de_DE@euro") == "DE"
    assert region_from_locale_name("C") is None
    assert region_from_locale_name(None) is None


def test_is_blocked_treats_unknown_country_as_allowed() -> None:
    policy = PolicyDocument(blocked_countries=["JP"])
    assert is_blocked("JP", policy) is True
    assert is_blocked("jp", policy) is True
    assert is_blocked("US", policy) is False
    assert is_blocked("", policy) is False


@pytest.mark.asyncio
async def test_ip_lookup_parses_plain_text_body() -> None:
    transport = _FakeTransport(body="jp\n")
    country = await _resolver().lookup_country_from_ip(transport, url="https://geo.example.com/", timeout=3.0)

    assert country == "JP"
    assert transport.calls == [("https://geo.example.com/", 3.0)]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["", "Undefined", "<html>rate limited</html>"])
async def test_ip_lookup_malformed_body_is_no_signal(body: str) -> None:
    assert await _resolver().lookup_country_from_ip(_FakeTransport(body=body)) == ""


@pytest.mark.asyncio
async def test_ip_lookup_http_error_is_no_signal() -> None:
    transport = _FakeTransport(error=GuardTransportError("HTTP 500", status_code=500))
    assert await _resolver().lookup_country_from_ip(transport) == ""
