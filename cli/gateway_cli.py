#!/usr/bin/env python3
"""
Gateway CLI - send signed Beckn requests to the gateway
"""
import asyncio
import argparse
import json
import logging
import os
import sys

# Add project root directory to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bap_signer.config import settings
from bap_signer.exceptions import BecknSignerError, GatewayError, KeyFormatError, KeyNotFoundError
from bap_signer.schemas import BecknContext, DEFAULT_GPS, build_search_payload
from bap_signer.services.gateway_client import GatewayClient
from bap_signer.services.signature import BecknSigner


async def cmd_search(client: GatewayClient, gps: str, radius_km: str):
    """Send /search for charging stations around gps"""
    context = BecknContext.new("search", settings.BAP_ID, settings.BAP_URI)
    payload = build_search_payload(context, gps=gps, radius_km=radius_km)

    print(f"🔁 Sending /search to {client.gateway_url} as {settings.BAP_ID}")
    print(f"Transaction ID: {context.transaction_id}")
    try:
        response = await client.post("search", payload)
    except GatewayError as e:
        print(f"✗ {e}")
        if e.body:
            print(f"    Body: {e.body}")
        sys.exit(1)
    except BecknSignerError as e:
        print(f"✗ Request not sent: {e}")
        sys.exit(1)

    print("✓ Search forwarded to gateway")
    print(json.dumps(response, indent=2, ensure_ascii=False))


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Gateway CLI - send signed Beckn requests to the gateway"
    )
    parser.add_argument("--dir", dest="key_dir", default=settings.BAP_KEY_DIR, help="Key directory")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode to log request headers and bodies",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    search_parser = subparsers.add_parser("search", help="Send a signed /search")
    search_parser.add_argument("--gps", default=DEFAULT_GPS, help="lat,lon")
    search_parser.add_argument("--radius", default="5", help="Search radius in km")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # No signing is possible without the key: stop here on load failure
    try:
        signer = BecknSigner.from_directory(args.key_dir, settings.BAP_ID)
    except (KeyNotFoundError, KeyFormatError) as e:
        print(f"✗ Cannot load signing key: {e}")
        print("Run: python cli/keys_cli.py generate")
        sys.exit(1)

    client = GatewayClient(
        signer,
        settings.BECKN_GATEWAY_URL,
        timeout=settings.BECKN_REQUEST_TIMEOUT,
        debug_mode=args.debug,
    )

    if args.command == "search":
        asyncio.run(cmd_search(client, args.gps, args.radius))


if __name__ == "__main__":
    main()
