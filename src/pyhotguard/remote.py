"""Best-effort remote policy override."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from pyhotguard._constants import REMOTE_POLICY_TIMEOUT
from pyhotguard._transport import Transport
from pyhotguard.exceptions import GuardPolicyError, GuardTransportError
from pyhotguard.models.policy import PolicyDocument
from pyhotguard.models.remote import RemotePolicyDocument

_logger = logging.getLogger(__name__)


def parse_remote_policy(text: str) -> PolicyDocument:
    """Parse a remote JSON body into a full :class:`PolicyDocument`.

    Raises
    ------
    GuardPolicyError
        If the body is not JSON, not an object, or has badly typed fields.
    """
    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise GuardPolicyError(f"Remote policy is not JSON: {text[:64]}") from exc

    if not isinstance(payload, dict):
        raise GuardPolicyError(f"Remote policy is not a JSON object: {type(payload).__name__}")

    try:
        return RemotePolicyDocument.model_validate(payload).to_policy()
    except ValidationError as exc:
        raise GuardPolicyError(f"Remote policy has invalid fields: {exc.error_count()} error(s)") from exc


class RemotePolicyFetcher:
    """Fetches the remote policy document for the current cycle only."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def fetch_override(self, url: str, timeout: float = REMOTE_POLICY_TIMEOUT) -> PolicyDocument | None:
        """Return the remote policy, or ``None`` when it cannot be used."""
        try:
            text = await self._transport.get_text(url, timeout=timeout)
            policy = parse_remote_policy(text)
        except (GuardTransportError, GuardPolicyError) as exc:
            _logger.warning("Fetch config failed: %s", exc)
            return None
        _logger.info("Remote policy loaded from %s", url)
        return policy
