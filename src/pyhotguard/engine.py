"""Initialization-cycle engine."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import aiohttp

from pyhotguard._transport import HttpTransport, Transport
from pyhotguard.config import GuardConfig
from pyhotguard.exceptions import GuardError, GuardStoreError
from pyhotguard.geo import GeoResolver
from pyhotguard.identity import IdentityResolver, mask_device_id
from pyhotguard.models.policy import PolicyDocument
from pyhotguard.pipeline import StrategyPipeline
from pyhotguard.policy_source import PolicySource
from pyhotguard.remote import RemotePolicyFetcher
from pyhotguard.state.batch import SettingsBatch, SettingValue
from pyhotguard.state.keys import SettingsKey
from pyhotguard.state.store import FileSettingsStore, MemorySettingsStore, SettingsStore
from pyhotguard.strategies import Sampler, Strategy, StrategyContext

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleResult:
    """What one initialization cycle decided and whether it was committed."""

    policy: PolicyDocument
    policy_source: str
    device_id: str
    country: str
    settings: dict[str, SettingValue]
    removed: frozenset[str]
    failed_strategies: tuple[str, ...]
    committed: bool


class GuardEngine:
    """Owns the policy-evaluation cycle for one host process.

    Construct it once in the host's startup sequence and hand it to
    consumers.  Usage::

        async with GuardEngine(GuardConfig.from_env()) as engine:
            engine.start()  # background task
            ...
            result = await engine.run_initialization_cycle()

    Concurrent calls share the in-flight cycle; a later call re-runs it,
    which is safe because every strategy is pure given its inputs.
    """

    def __init__(
        self,
        config: GuardConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        store: SettingsStore | None = None,
        identity: IdentityResolver | None = None,
        geo: GeoResolver | None = None,
        sampler: Sampler = random.random,
        strategies: tuple[Strategy, ...] | None = None,
    ) -> None:
        config.validate()
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._external_transport = transport is not None
        if store is None:
            store = FileSettingsStore(config.settings_path) if config.settings_path else MemorySettingsStore()
        self._store = store
        self._policy_source = PolicySource(config.policy_file)
        self._identity = identity or IdentityResolver()
        self._geo = geo or GeoResolver()
        self._pipeline = StrategyPipeline(sampler=sampler, strategies=strategies)
        self._inflight: asyncio.Task[CycleResult] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> GuardEngine:
        if not self._external_transport:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session, channel=self._config.channel)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        # Let a running cycle finish; it is bounded by the fetch timeouts.
        if self._inflight is not None:
            if not self._inflight.done():
                await asyncio.wait({self._inflight})
            # Retrieve the error so a cycle nobody awaited is still reported.
            if not self._inflight.cancelled() and (error := self._inflight.exception()) is not None:
                _logger.error("Initialization cycle failed", exc_info=error)
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def store(self) -> SettingsStore:
        return self._store

    def start(self) -> asyncio.Task[CycleResult]:
        """Schedule a cycle on the running loop, or return the one in flight."""
        if self._inflight is None or self._inflight.done():
            loop = asyncio.get_running_loop()
            self._inflight = loop.create_task(self._run_cycle(), name="pyhotguard-init")
        return self._inflight

    async def run_initialization_cycle(self) -> CycleResult:
        """Run (or join) one initialization cycle and return its result."""
        return await asyncio.shield(self.start())

    def get_setting(self, key: str, default: SettingValue | None = None) -> SettingValue | None:
        """Read a published setting, as the downloader would."""
        return self._store.get(key, default)

    def set_config_url(self, url: str | None) -> None:
        """Persist a remote policy URL used by later cycles; ``None`` clears it."""
        batch = SettingsBatch()
        if url and url.strip():
            batch.set(SettingsKey.CONFIG_URL, url.strip())
        else:
            batch.remove(SettingsKey.CONFIG_URL)
        self._store.commit(batch)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise GuardError("Engine not initialized. Use 'async with GuardEngine(...) as engine:'")
        return self._transport

    def _remote_policy_url(self) -> str | None:
        override = self._store.get(SettingsKey.CONFIG_URL)
        if isinstance(override, str) and override:
            return override
        return self._config.remote_policy_url

    async def _resolve_policy(self, loop: asyncio.AbstractEventLoop) -> tuple[PolicyDocument, str]:
        policy = await loop.run_in_executor(None, self._policy_source.load)
        url = self._remote_policy_url()
        if not url:
            _logger.debug("No remote policy URL, keeping local policy")
            return policy, "local"
        fetcher = RemotePolicyFetcher(self._require_transport())
        remote = await fetcher.fetch_override(url, self._config.remote_policy_timeout)
        if remote is None:
            return policy, "local"
        return remote, "remote"

    async def _resolve_country(self, loop: asyncio.AbstractEventLoop) -> str:
        country = await loop.run_in_executor(None, self._geo.resolve_country)
        if country or not self._config.ip_geolocation_enabled:
            return country
        return await self._geo.lookup_country_from_ip(
            self._require_transport(),
            url=self._config.ip_geolocation_url,
            timeout=self._config.ip_geolocation_timeout,
        )

    async def _run_cycle(self) -> CycleResult:
        loop = asyncio.get_running_loop()
        _logger.info("HotUpdate guard initializing (channel=%s)", self._config.channel)

        policy, policy_source = await self._resolve_policy(loop)
        device_id = await loop.run_in_executor(None, self._identity.resolve_device_id)
        country = await self._resolve_country(loop)

        context = StrategyContext(policy=policy, device_id=device_id, country=country)
        outcome = self._pipeline.evaluate(context)

        committed = True
        try:
            await loop.run_in_executor(None, self._store.commit, outcome.batch)
        except GuardStoreError:
            _logger.error("Settings commit failed, previous settings remain", exc_info=True)
            committed = False

        _logger.info(
            "HotUpdate guard cycle done: policy=%s device=%s country=%s failover=%s failed=%s",
            policy_source,
            mask_device_id(device_id) or "<unknown>",
            country or "<unknown>",
            outcome.batch.values.get(SettingsKey.USE_FAILOVER_ENDPOINT),
            outcome.failed or "none",
        )
        return CycleResult(
            policy=policy,
            policy_source=policy_source,
            device_id=device_id,
            country=country,
            settings=dict(outcome.batch.values),
            removed=frozenset(outcome.batch.removals),
            failed_strategies=tuple(outcome.failed),
            committed=committed,
        )
