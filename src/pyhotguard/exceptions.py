"""Custom exception hierarchy for pyhotguard."""

from __future__ import annotations


class GuardError(Exception):
    """Base exception for all pyhotguard errors."""


class GuardConfigError(GuardError):
    """Invalid or missing configuration."""


class GuardTransportError(GuardError):
    """HTTP-level failure (network, timeout, non-2xx)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class GuardPolicyError(GuardError):
    """A fetched body could not be read as a policy document."""


class GuardStrategyError(GuardError):
    """A pipeline strategy broke its contract (e.g. wrote a key it does not own)."""

    def __init__(self, message: str, *, strategy: str = "") -> None:
        self.strategy = strategy
        super().__init__(message)


class GuardStoreError(GuardError):
    """The settings store could not persist a commit."""
