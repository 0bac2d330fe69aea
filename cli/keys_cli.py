#!/usr/bin/env python3
"""
Keys CLI - BAP Ed25519 key management and request signing tool
"""
import argparse
import json
import logging
import os
import sys

# Add project root directory to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bap_signer.config import settings
from bap_signer.exceptions import (
    BecknSignerError,
    KeyExistsError,
    KeyFormatError,
    KeyNotFoundError,
)
from bap_signer.services import key_store
from bap_signer.services.canonical import compute_digest
from bap_signer.services.key_generator import key_generator
from bap_signer.services.signature import BecknSigner, verify_digest_signature


def cmd_generate(key_dir: str, force: bool = False):
    """Generate a new key pair and save it to key_dir"""
    try:
        keypair = key_generator.generate_ed25519_keypair()
        paths = key_store.persist_keypair(keypair, key_dir, overwrite=force)
    except KeyExistsError as e:
        print(f"✗ {e}")
        print("Use --force to replace it. The old key will be lost.")
        sys.exit(1)
    except (BecknSignerError, OSError) as e:
        print(f"✗ Error generating keys: {e}")
        sys.exit(1)

    print("=" * 70)
    print("✓ Ed25519 Key Pair Generated")
    print("=" * 70)
    print(f"Private key:   {paths['private_key']}")
    print(f"Public key:    {paths['public_key']}")
    print(f"Public (b64):  {paths['public_key_b64']}")
    print("=" * 70)
    print(f"\n📄 Public Key (Base64, for registry onboarding):\n{keypair.public_key_raw_base64}")
    print("\n⚠️  Back up the private key securely and never share it.")


def cmd_show(key_dir: str):
    """Print the registration public key"""
    try:
        print(key_store.load_public_key_b64(key_dir))
    except (KeyNotFoundError, KeyFormatError) as e:
        print(f"✗ {e}")
        sys.exit(1)


def _read_payload(filename: str):
    try:
        with open(filename, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        print(f"Error: File not found: {filename}")
        sys.exit(1)
    except json.JSONDecodeError:
        print(f"Error: Invalid JSON file: {filename}")
        sys.exit(1)


def cmd_sign(filename: str, key_dir: str, subscriber_id: str):
    """Print Digest and Authorization headers for a JSON payload file"""
    payload = _read_payload(filename)
    try:
        signer = BecknSigner.from_directory(key_dir, subscriber_id)
    except (KeyNotFoundError, KeyFormatError) as e:
        print(f"✗ Cannot load signing key: {e}")
        sys.exit(1)

    try:
        headers = signer.create_headers(payload)
    except BecknSignerError as e:
        print(f"✗ Signing failed: {e}")
        sys.exit(1)

    print(f"Digest: {headers.digest}")
    print(f"Authorization: {headers.authorization}")


def cmd_verify(filename: str, signature: str, key_dir: str):
    """Check a signature for a JSON payload file against the stored key"""
    payload = _read_payload(filename)
    try:
        keypair = key_store.load_keypair(key_dir)
        digest = compute_digest(payload)
    except BecknSignerError as e:
        print(f"✗ {e}")
        sys.exit(1)

    if verify_digest_signature(keypair.public_key_raw, digest, signature):
        print(f"✓ Signature valid for {digest}")
    else:
        print(f"✗ Signature does not match {digest}")
        sys.exit(1)


def main(argv=None):
    """Entry point. Supports passing a custom argument list for debugging or reuse.

    Examples:
        main(["generate", "--dir", "keys"])
    """
    parser = argparse.ArgumentParser(
        description="Keys CLI - BAP Ed25519 key management and request signing tool"
    )
    parser.add_argument(
        "--dir",
        dest="key_dir",
        default=settings.BAP_KEY_DIR,
        help=f"Key directory (default: {settings.BAP_KEY_DIR})",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    generate_parser = subparsers.add_parser("generate", help="Generate and save a new key pair")
    generate_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing private key",
    )

    subparsers.add_parser("show", help="Print the base64 public key")

    sign_parser = subparsers.add_parser("sign", help="Sign a JSON payload file")
    sign_parser.add_argument("payload_file", help="Path to JSON payload")
    sign_parser.add_argument(
        "--subscriber-id",
        default=settings.BAP_ID,
        help="keyId for the Authorization header (default: BAP_ID)",
    )

    verify_parser = subparsers.add_parser("verify", help="Verify a signature for a JSON payload file")
    verify_parser.add_argument("payload_file", help="Path to JSON payload")
    verify_parser.add_argument("signature", help="Base64 signature")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "generate":
        cmd_generate(args.key_dir, args.force)
    elif args.command == "show":
        cmd_show(args.key_dir)
    elif args.command == "sign":
        cmd_sign(args.payload_file, args.key_dir, args.subscriber_id)
    elif args.command == "verify":
        cmd_verify(args.payload_file, args.signature, args.key_dir)


if __name__ == "__main__":
    main()
