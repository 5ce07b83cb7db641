"""Plain HTTPS GET transport used for remote policy and IP geolocation."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import aiohttp

from pyhotguard._constants import USER_AGENT
from pyhotguard.exceptions import GuardTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the fetchers.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_text(self, url: str, *, timeout: float) -> str:
        ...


class HttpTransport:
    """aiohttp-backed GET with a hard total timeout."""

    def __init__(self, http_session: aiohttp.ClientSession, *, channel: str = "release") -> None:
        self._http = http_session
        self._user_agent = f"{USER_AGENT} ({channel})"

    async def get_text(self, url: str, *, timeout: float) -> str:
        """GET *url* and return the body text.

        Raises
        ------
        GuardTransportError
            On network failure, timeout, or a non-2xx status.
        """
        headers = {
            "accept-encoding": "identity",
            "user-agent": self._user_agent,
        }

        _logger.debug("GET %s (timeout=%.1fs)", url, timeout)

        try:
            async with self._http.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise GuardTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except GuardTransportError:
            raise
        except asyncio.TimeoutError as exc:
            raise GuardTransportError(f"Request to {url} timed out after {timeout}s", url=url) from exc
        except (aiohttp.ClientError, UnicodeDecodeError) as exc:
            raise GuardTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        return text
