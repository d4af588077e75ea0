#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from indieauth_discovery.client import Client
from indieauth_discovery.config import get_settings
from indieauth_discovery.errors import IndieAuthDiscoveryError
from indieauth_discovery.profile import Profile


async def run(kind: str, url: str, timeout: float | None) -> dict[str, object]:
    settings = get_settings()
    if timeout is not None:
        settings = settings.model_copy(update={"outbound_http_timeout_seconds": timeout})

    if kind == "client":
        return (await Client.discover(url, settings=settings)).to_dict()
    return (await Profile.discover(url, settings=settings)).to_dict()


def main() -> int:
    parser = argparse.ArgumentParser(description="Discover IndieAuth endpoints for a URL")
    parser.add_argument("kind", choices=["profile", "client"], help="What to discover")
    parser.add_argument("url", help="Profile or client identifier, e.g. example.org")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Outbound HTTP timeout in seconds (default: from settings)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log probes and fetches")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        result = asyncio.run(run(args.kind, args.url, args.timeout))
    except IndieAuthDiscoveryError as exc:
        print(exc.message, file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
