#!/usr/bin/env python3
"""
Fetch a grant from the commerce auth API and print it with secrets masked.

Handy for checking API client credentials and scopes from a developer
workstation or CI job. Credentials come from the usual ``COMMERCE_*``
environment variables (or a ``.env`` file).
"""

import argparse
import asyncio
import json
from typing import Any, Dict, List, Optional
import sys

from pydantic import ValidationError as SettingsError

from commerce_auth import AnonymousGrantOptions, AuthConfig, GrantManager, get_auth_config
from commerce_shared.errors import CommerceError
from commerce_shared.logging import configure_logging, mask_value


async def fetch(config: AuthConfig,
                kind: str,
                scopes: Optional[List[str]],
                anonymous_id: Optional[str],
                reveal: bool) -> Dict[str, Any]:
    """Fetch the requested grant and return it as a dict."""
    manager = GrantManager(config)

    if kind == "anonymous":
        grant = await manager.get_anonymous_grant(
            AnonymousGrantOptions(scopes=scopes, anonymous_id=anonymous_id)
        )
    else:
        grant = await manager.get_client_grant()

    data = grant.to_dict()
    return data if reveal else mask_value(data)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch a grant from the commerce auth API.")
    parser.add_argument("kind", choices=["client", "anonymous"], nargs="?", default="client", help="Grant to fetch")
    parser.add_argument("--scope", dest="scopes", action="append", default=None, help="Customer scope (repeatable, anonymous only)")
    parser.add_argument("--anonymous-id", default=None, help="Anonymous id to attach (anonymous only)")
    parser.add_argument("--reveal", action="store_true", help="Print tokens unmasked")
    parser.add_argument("--log-level", default=None, help="Log level (defaults to COMMERCE_LOG_LEVEL)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        config = get_auth_config()
    except SettingsError as exc:
        print(f"[fetch-grant] invalid configuration: {exc}", file=sys.stderr)
        return 2

    configure_logging("fetch-grant", args.log_level or config.log_level)
    try:
        data = asyncio.run(fetch(config, args.kind, args.scopes, args.anonymous_id, args.reveal))
    except KeyboardInterrupt:
        return 130
    except CommerceError as exc:
        print(f"[fetch-grant] failed: {exc.code}: {exc.message}", file=sys.stderr)
        return 1

    print(json.dumps(data, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
