from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from pyhotguard.config import GuardConfig
from pyhotguard.engine import GuardEngine
from pyhotguard.exceptions import GuardError, GuardTransportError
from pyhotguard.geo import GeoResolver
from pyhotguard.identity import IdentityResolver
from pyhotguard.state.keys import SettingsKey
from pyhotguard.state.store import FileSettingsStore, MemorySettingsStore

BACKUP = "https://backup.example.com"
CONFIG_URL = "https://cfg.example.com/guard.json"
GEO_URL = "https://geo.example.com/country/"


@dataclass
class FakeNetwork:
    routes: dict[str, str | GuardTransportError] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    delay: float = 0.0

    async def get_text(self, url: str, *, timeout: float) -> str:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.routes.get(url)
        if response is None:
            raise GuardTransportError(f"HTTP 404 from {url}", status_code=404, url=url)
        if isinstance(response, GuardTransportError):
            raise response
        return response


@dataclass
class CountingIdentity:
    device_id: str
    calls: int = 0

    def __call__(self) -> str:
        self.calls += 1
        return self.device_id


def _policy_file(tmp_path: Path, *, whitelist: str = "") -> Path:
    path = tmp_path / "guard.properties"
    path.write_text(
        "\n".join(
            [
                "failover.enabled=true",
                "failover.probability=1.0",
                f"failover.endpoint={BACKUP}",
                "geo.blocked.countries=JP",
                f"device.whitelist={whitelist}",
            ]
        ),
        encoding="utf-8",
    )
    return path


def _geo(country: str | None) -> GeoResolver:
    return GeoResolver(sim_country=lambda: country, network_country=lambda: None, locale_country=lambda: None)


def _engine(
    config: GuardConfig,
    network: FakeNetwork,
    *,
    device_id: str = "dev1",
    country: str | None = "JP",
    **kwargs: object,
) -> GuardEngine:
    return GuardEngine(
        config,
        transport=network,
        identity=IdentityResolver(lambda: device_id),
        geo=_geo(country),
        sampler=lambda: 0.0,
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_blocked_country_without_whitelist_disables_failover(tmp_path: Path) -> None:
    config = GuardConfig(policy_file=str(_policy_file(tmp_path)))

    async with _engine(config, FakeNetwork()) as engine:
        result = await engine.run_initialization_cycle()

        assert result.country == "JP"
        assert result.device_id == "dev1"
        assert result.policy_source == "local"
        assert result.committed is True
        assert engine.get_setting(SettingsKey.USE_FAILOVER_ENDPOINT) is False
        assert engine.get_setting(SettingsKey.FAILOVER_ENDPOINT_URL) is None


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_whitelisted_device_overrides_geo_block(tmp_path: Path) -> None:
    config = GuardConfig(policy_file=str(_policy_file(tmp_path, whitelist="dev1")))

    async with _engine(config, FakeNetwork()) as engine:
        await engine.run_initialization_cycle()

        assert engine.get_setting(SettingsKey.USE_FAILOVER_ENDPOINT) is True
        assert engine.get_setting(SettingsKey.FAILOVER_ENDPOINT_URL) == BACKUP
        snapshot = engine.store.snapshot()

    assert snapshot["signatureVerificationEnabled"] is True
    assert snapshot["integrityVerificationEnabled"] is True
    assert snapshot["integrityStrictMode"] is True
    assert snapshot["urlWhitelist"] == "s3.amazonaws.com,cloudfront.net"
    assert snapshot["forceHttps"] is True
    assert snapshot["certificatePinningEnabled"] is False


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_remote_policy_replaces_local_wholesale(tmp_path: Path) -> None:
    config = GuardConfig(
        policy_file=str(_policy_file(tmp_path, whitelist="dev1")),
        remote_policy_url=CONFIG_URL,
    )
    network = FakeNetwork(
        routes={CONFIG_URL: '{"enabled": true, "endpoint": "https://remote.example.com", "blocked_countries": ["JP"]}'}
    )

    async with _engine(config, network) as engine:
        result = await engine.run_initialization_cycle()

    assert result.policy_source == "remote"
    assert result.policy.failover_endpoint == "https://remote.example.com"
    # The local whitelist is not merged in, so the geo block applies.
    assert result.policy.device_whitelist == frozenset()
    assert result.settings[SettingsKey.USE_FAILOVER_ENDPOINT] is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        GuardTransportError("HTTP 500", status_code=500),
        GuardTransportError("timed out"),
        "{invalid json",
    ],
)
async def test_remote_failure_keeps_local_policy(tmp_path: Path, response: str | GuardTransportError) -> None:
    config = GuardConfig(
        policy_file=str(_policy_file(tmp_path, whitelist="dev1")),
        remote_policy_url=CONFIG_URL,
    )

    async with _engine(config, FakeNetwork(routes={CONFIG_URL: response})) as engine:
        result = await engine.run_initialization_cycle()

    assert result.policy_source == "local"
    assert result.policy.device_whitelist == frozenset({"dev1"})
    assert result.policy.failover_endpoint == BACKUP
    assert result.settings[SettingsKey.USE_FAILOVER_ENDPOINT] is True


@pytest.mark.asyncio
async def test_persisted_config_url_takes_precedence(tmp_path: Path) -> None:
    override = "https://override.example.com/guard.json"
    config = GuardConfig(remote_policy_url=CONFIG_URL)
    network = FakeNetwork(routes={override: '{"enabled": false}', CONFIG_URL: "{}"})

    async with _engine(config, network) as engine:
        engine.set_config_url(override)
        assert engine.get_setting(SettingsKey.CONFIG_URL) == override
        first = await engine.run_initialization_cycle()

        engine.set_config_url(None)
        assert engine.get_setting(SettingsKey.CONFIG_URL) is None
        second = await engine.run_initialization_cycle()

    assert network.calls == [override, CONFIG_URL]
    assert first.policy.failover_enabled is False
    assert second.policy.failover_enabled is True


@pytest.mark.asyncio
async def test_no_remote_url_makes_no_request() -> None:
    network = FakeNetwork()
    async with _engine(GuardConfig(), network) as engine:
        result = await engine.run_initialization_cycle()

    assert network.calls == []
    assert result.policy_source == "local"


@pytest.mark.asyncio
async def test_ip_fallback_only_when_enabled_and_no_local_signal() -> None:
    network = FakeNetwork(routes={GEO_URL: "tw\n"})
    config = GuardConfig(ip_geolocation_enabled=True, ip_geolocation_url=GEO_URL)

    async with _engine(config, network, country=None) as engine:
        result = await engine.run_initialization_cycle()
    assert result.country == "TW"
    assert network.calls == [GEO_URL]

    network.calls.clear()
    async with _engine(config, network, country="us") as engine:
        result = await engine.run_initialization_cycle()
    assert result.country == "US"
    assert network.calls == []

    async with _engine(GuardConfig(ip_geolocation_url=GEO_URL), network, country=None) as engine:
        result = await engine.run_initialization_cycle()
    assert result.country == ""
    assert network.calls == []


@pytest.mark.asyncio
async def test_concurrent_calls_share_one_cycle() -> None:
    identity = CountingIdentity("dev1")
    network = FakeNetwork(routes={CONFIG_URL: "{}"}, delay=0.05)
    engine = GuardEngine(
        GuardConfig(remote_policy_url=CONFIG_URL),
        transport=network,
        identity=IdentityResolver(identity),
        geo=_geo("US"),
    )

    async with engine:
        first, second = await asyncio.gather(
            engine.run_initialization_cycle(),
            engine.run_initialization_cycle(),
        )
        assert first is second
        assert identity.calls == 1
        assert network.calls == [CONFIG_URL]

        # Once finished, a new call runs a fresh cycle.
        await engine.run_initialization_cycle()
        assert identity.calls == 2


@pytest.mark.asyncio
async def test_start_runs_in_background() -> None:
    async with _engine(GuardConfig(), FakeNetwork(), country="US") as engine:
        task = engine.start()
        assert engine.start() is task
        result = await task

    assert result.committed is True
    assert result.settings[SettingsKey.USE_FAILOVER_ENDPOINT] is True


@pytest.mark.asyncio
async def test_network_work_requires_context_manager() -> None:
    engine = GuardEngine(GuardConfig(remote_policy_url=CONFIG_URL), identity=IdentityResolver(lambda: "dev1"))
    with pytest.raises(GuardError, match="not initialized"):
        await engine.run_initialization_cycle()


@pytest.mark.asyncio
async def test_settings_path_uses_file_store(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    config = GuardConfig(settings_path=str(path))

    async with _engine(config, FakeNetwork(), country="US") as engine:
        assert isinstance(engine.store, FileSettingsStore)
        await engine.run_initialization_cycle()

    assert FileSettingsStore(path).get("useFailoverEndpoint") is True


@pytest.mark.asyncio
async def test_commit_failure_is_reported_not_raised(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = FileSettingsStore(blocker / "settings.json")

    async with _engine(GuardConfig(), FakeNetwork(), store=store) as engine:
        result = await engine.run_initialization_cycle()

    assert result.committed is False
    assert store.snapshot() == {}


@pytest.mark.asyncio
async def test_fresh_engine_per_test_has_isolated_state() -> None:
    async with _engine(GuardConfig(), FakeNetwork(), country="US") as engine:
        assert isinstance(engine.store, MemorySettingsStore)
        assert engine.store.snapshot() == {}


class _BrokenStore(MemorySettingsStore):
    def get(self, key: str, default: object = None) -> object:
        raise RuntimeError("store offline")


@pytest.mark.asyncio
async def test_exit_reports_failure_of_unawaited_cycle(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR, logger="pyhotguard.engine")

    async with _engine(GuardConfig(), FakeNetwork(), store=_BrokenStore()) as engine:
        task = engine.start()

    assert task.done()
    assert isinstance(task.exception(), RuntimeError)
    assert "Initialization cycle failed" in caplog.text
    assert "store offline" in caplog.text
