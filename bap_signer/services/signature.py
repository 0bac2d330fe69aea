"""
Beckn HTTP signature composition.

Signing string:  digest: SHA-256=<base64>
Authorization:   Signature keyId="<id>",algorithm="ed25519",headers="digest",signature="<base64>"
"""
import base64
import binascii
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Union

from nacl import signing
from nacl import exceptions as nacl_exceptions

from bap_signer.exceptions import SigningError, validate_subscriber_id
from bap_signer.services.canonical import canonical_bytes, digest_bytes
from bap_signer.services.key_generator import KeyPair
from bap_signer.services import key_store

logger = logging.getLogger(__name__)

SIGNATURE_ALGORITHM = "ed25519"
SIGNED_HEADERS = "digest"


def build_signing_string(digest: str) -> str:
    return f"digest: {digest}"


def sign_digest(digest: str, keypair: KeyPair) -> str:
    """
    Sign the signing string for *digest* with pure Ed25519.

    Returns the base64 encoded 64-byte signature. Ed25519 is deterministic,
    so the same digest and key always give the same signature.
    """
    message = build_signing_string(digest).encode("utf-8")
    try:
        signature = keypair.signing_key.sign(message).signature
    except (nacl_exceptions.CryptoError, TypeError, ValueError) as e:
        logger.error(f"Failed to sign digest: {e}")
        raise SigningError(f"Ed25519 signing failed: {e}") from e
    return base64.b64encode(signature).decode("utf-8")


def format_authorization_header(subscriber_id: str, signature_base64: str) -> str:
    """Render the Authorization header value in the fixed field order."""
    validate_subscriber_id(subscriber_id)
    return (
        f'Signature keyId="{subscriber_id}",'
        f'algorithm="{SIGNATURE_ALGORITHM}",'
        f'headers="{SIGNED_HEADERS}",'
        f'signature="{signature_base64}"'
    )


def verify_digest_signature(public_key_raw: bytes, digest: str, signature_base64: str) -> bool:
    """
    Verify a signature over the signing string for *digest*.

    Returns True if signature is valid, False otherwise
    """
    try:
        verify_key = signing.VerifyKey(public_key_raw)
        signature = base64.b64decode(signature_base64, validate=True)
        verify_key.verify(build_signing_string(digest).encode("utf-8"), signature)
        return True
    except (nacl_exceptions.BadSignatureError, nacl_exceptions.CryptoError, binascii.Error, ValueError, TypeError) as e:
        logger.warning(f"Signature verification failed: {e}")
        return False


@dataclass(frozen=True)
class SignatureHeaders:
    digest: str
    authorization: str

    def as_http_headers(self) -> Dict[str, str]:
        return {"Digest": self.digest, "Authorization": self.authorization}


@dataclass(frozen=True)
class BecknSigner:
    """
    Key handle for one subscriber.

    Built once at startup and shared read-only by every request; it holds
    no mutable state, so concurrent create_headers calls need no locking.
    """

    keypair: KeyPair = field(repr=False)
    subscriber_id: str

    def __post_init__(self):
        validate_subscriber_id(self.subscriber_id)

    @classmethod
    def from_directory(cls, directory: Union[str, Path], subscriber_id: str) -> "BecknSigner":
        """Load the persisted key. KeyNotFoundError / KeyFormatError are fatal to the caller."""
        return cls(key_store.load_keypair(directory), subscriber_id)

    @property
    def public_key_base64(self) -> str:
        return self.keypair.public_key_raw_base64

    def create_headers(self, payload: Any) -> SignatureHeaders:
        """Digest and Authorization header values for *payload*."""
        return self.sign_body(canonical_bytes(payload))

    def sign_body(self, body: bytes) -> SignatureHeaders:
        """Header values for a body that is already serialized."""
        digest = digest_bytes(body)
        signature = sign_digest(digest, self.keypair)
        return SignatureHeaders(
            digest=digest,
            authorization=format_authorization_header(self.subscriber_id, signature),
        )
