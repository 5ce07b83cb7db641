#!/usr/bin/env python3
"""Run one pyhotguard initialization cycle and print the published settings.

Usage
-----
Configure through ``HOTGUARD_*`` environment variables and run::

    export HOTGUARD_POLICY_FILE=guard.properties
    export HOTGUARD_REMOTE_POLICY_URL=https://example.com/guard.json
    python scripts/run_cycle.py

Options::

    --json               Output as machine-readable JSON
    --ip-geolocation     Allow the IP geolocation fallback
    --config-url URL     Persist a remote policy URL before running
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyhotguard import GuardConfig, GuardEngine  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


# ── main ─────────────────────────────────────────────────────


async def main() -> None:
    parser = argparse.ArgumentParser(description="Run one pyhotguard initialization cycle")
    parser.add_argument("--json", dest="json_mode", action="store_true", help="Output JSON")
    parser.add_argument("--ip-geolocation", action="store_true", help="Allow the IP geolocation fallback")
    parser.add_argument("--config-url", default=None, help="Persist this remote policy URL first")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.ip_geolocation:
        overrides["ip_geolocation_enabled"] = True
    config = GuardConfig.from_env(**overrides)

    async with GuardEngine(config) as engine:
        if args.config_url:
            engine.set_config_url(args.config_url)
        result = await engine.run_initialization_cycle()
        snapshot = engine.store.snapshot()

    if args.json_mode:
        payload = {
            "timestamp": datetime.now(UTC).isoformat(),
            "channel": config.channel,
            "policy_source": result.policy_source,
            "country": result.country,
            "failed_strategies": list(result.failed_strategies),
            "committed": result.committed,
            "settings": snapshot,
        }
        print(json.dumps(payload, indent=2, sort_keys=True))
        return

    out: list[str] = [_section("pyhotguard run_cycle")]
    out.append(f"  channel   : {config.channel}")
    out.append(f"  policy    : {result.policy_source}")
    out.append(f"  country   : {result.country or '<unknown>'}")
    out.append(f"  committed : {result.committed}")
    if result.failed_strategies:
        out.append(f"  failed    : {', '.join(result.failed_strategies)}")
    out.append(_section("SETTINGS"))
    for key in sorted(snapshot):
        out.append(f"  {key}: {snapshot[key]}")
    print("\n".join(out))


if __name__ == "__main__":
    asyncio.run(main())
