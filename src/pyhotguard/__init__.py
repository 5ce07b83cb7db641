"""pyhotguard - Policy engine gating how a client fetches its hot-update bundle."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyhotguard")
except PackageNotFoundError:
    __version__ = "0+local"
from pyhotguard.config import GuardConfig
from pyhotguard.engine import CycleResult, GuardEngine
from pyhotguard.exceptions import (
    GuardConfigError,
    GuardError,
    GuardPolicyError,
    GuardStoreError,
    GuardStrategyError,
    GuardTransportError,
)
from pyhotguard.geo import GeoResolver, is_blocked, normalize_country_code
from pyhotguard.identity import IdentityResolver
from pyhotguard.models import PolicyDocument, RemotePolicyDocument
from pyhotguard.pipeline import PipelineOutcome, StrategyPipeline
from pyhotguard.policy_source import PolicySource
from pyhotguard.remote import RemotePolicyFetcher
from pyhotguard.state import FileSettingsStore, MemorySettingsStore, SettingsBatch, SettingsKey, SettingsStore

__all__ = [
    "__version__",
    "CycleResult",
    "FileSettingsStore",
    "GeoResolver",
    "GuardConfig",
    "GuardConfigError",
    "GuardEngine",
    "GuardError",
    "GuardPolicyError",
    "GuardStoreError",
    "GuardStrategyError",
    "GuardTransportError",
    "IdentityResolver",
    "MemorySettingsStore",
    "PipelineOutcome",
    "PolicyDocument",
    "PolicySource",
    "RemotePolicyDocument",
    "RemotePolicyFetcher",
    "SettingsBatch",
    "SettingsKey",
    "SettingsStore",
    "StrategyPipeline",
    "is_blocked",
    "normalize_country_code",
]
