"""
Key Store - Persist and load the subscriber Ed25519 key pair as PEM files
"""
import base64
import binascii
import logging
import os
from pathlib import Path
from typing import Dict, Union

from bap_signer.exceptions import KeyExistsError, KeyFormatError, KeyNotFoundError
from bap_signer.services.key_generator import KeyPair, key_generator

logger = logging.getLogger(__name__)

PRIVATE_KEY_FILE = "private_key.pem"
PUBLIC_KEY_FILE = "public_key.pem"
PUBLIC_KEY_B64_FILE = "public_key.b64"


def _write_file(path: Path, data: bytes, mode: int = 0o644) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    os.chmod(path, mode)


def persist_keypair(
    keypair: KeyPair,
    directory: Union[str, Path],
    overwrite: bool = False,
) -> Dict[str, Path]:
    """
    Write private_key.pem, public_key.pem and public_key.b64 to *directory*.

    The directory is created if needed. An existing private key is only
    replaced when overwrite=True; otherwise KeyExistsError is raised and
    nothing is written.
    """
    directory = Path(directory)
    private_path = directory / PRIVATE_KEY_FILE
    if private_path.exists() and not overwrite:
        raise KeyExistsError(
            f"Private key already exists at {private_path}; pass overwrite=True to replace it"
        )

    directory.mkdir(parents=True, exist_ok=True)
    paths = {
        "private_key": private_path,
        "public_key": directory / PUBLIC_KEY_FILE,
        "public_key_b64": directory / PUBLIC_KEY_B64_FILE,
    }
    raw_public = key_generator.raw_public_key(keypair)

    _write_file(paths["private_key"], keypair.private_key_pem, mode=0o600)
    _write_file(paths["public_key"], keypair.public_key_pem)
    _write_file(paths["public_key_b64"], base64.b64encode(raw_public))

    if overwrite:
        logger.warning(f"Overwrote key pair in {directory}")
    else:
        logger.info(f"Saved key pair to {directory}")
    return paths


def load_keypair(directory: Union[str, Path]) -> KeyPair:
    """
    Load the key pair from <directory>/private_key.pem.

    If public_key.b64 is present it must match the private key.
    """
    directory = Path(directory)
    private_path = directory / PRIVATE_KEY_FILE
    try:
        pem = private_path.read_bytes()
    except FileNotFoundError as e:
        raise KeyNotFoundError(f"Private key not found: {private_path}") from e
    except OSError as e:
        raise KeyNotFoundError(f"Cannot read private key {private_path}: {e}") from e

    keypair = key_generator.load_private_key_pem(pem)

    b64_path = directory / PUBLIC_KEY_B64_FILE
    if b64_path.exists():
        stored = _decode_public_key_b64(b64_path)
        if stored != keypair.public_key_raw:
            raise KeyFormatError(
                f"{b64_path} does not match the public key derived from {private_path}"
            )

    logger.info(f"Loaded Ed25519 key from {private_path}, public key: {keypair.public_key_raw_base64}")
    return keypair


def _decode_public_key_b64(path: Path) -> bytes:
    try:
        text = path.read_text(encoding="utf-8").strip()
    except (UnicodeDecodeError, OSError) as e:
        raise KeyFormatError(f"Cannot read public key {path}: {e}") from e
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyFormatError(f"Invalid base64 in {path}: {e}") from e


def load_public_key_b64(directory: Union[str, Path]) -> str:
    """
    Return the base64 raw public key used for registry onboarding.

    When private_key.pem is present the key is derived from it (and
    public_key.b64 must agree); the .b64 file alone is used otherwise.
    """
    directory = Path(directory)
    if (directory / PRIVATE_KEY_FILE).exists():
        return load_keypair(directory).public_key_raw_base64

    b64_path = directory / PUBLIC_KEY_B64_FILE
    if b64_path.exists():
        raw = _decode_public_key_b64(b64_path)
        if len(raw) != 32:
            raise KeyFormatError(f"{b64_path} must hold 32 bytes, got {len(raw)}")
        return base64.b64encode(raw).decode()
    return load_keypair(directory).public_key_raw_base64
