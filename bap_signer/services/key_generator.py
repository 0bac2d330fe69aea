"""
Ed25519 Key Pair Utility
Generates, parses and encodes Ed25519 key pairs for Beckn subscriber signing
"""
import base64
from dataclasses import dataclass, field
from typing import Tuple
import logging

from nacl import signing
from nacl import exceptions as nacl_exceptions
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

from bap_signer.exceptions import KeyFormatError

logger = logging.getLogger(__name__)

# id-Ed25519, RFC 8410: 1.3.101.112
ED25519_OID = bytes([0x2b, 0x65, 0x70])
ED25519_KEY_SIZE = 32

_TAG_SEQUENCE = 0x30
_TAG_OID = 0x06
_TAG_BIT_STRING = 0x03


@dataclass(frozen=True)
class KeyPair:
    """
    Immutable Ed25519 key pair.

    Wraps a PyNaCl SigningKey. The public half is always derived from the
    private seed, so the two can never disagree.
    """

    signing_key: signing.SigningKey = field(repr=False)

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key_raw_base64})"

    @property
    def seed(self) -> bytes:
        """The 32-byte private seed"""
        return bytes(self.signing_key)

    @property
    def verify_key(self) -> signing.VerifyKey:
        return self.signing_key.verify_key

    @property
    def public_key_raw(self) -> bytes:
        """The raw 32-byte public key"""
        return bytes(self.signing_key.verify_key)

    @property
    def public_key_raw_base64(self) -> str:
        return base64.b64encode(self.public_key_raw).decode('utf-8')

    @property
    def private_key_pem(self) -> bytes:
        """PKCS8 PEM, unencrypted"""
        private_key = Ed25519PrivateKey.from_private_bytes(self.seed)
        return private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())

    @property
    def public_key_der(self) -> bytes:
        """X.509 SubjectPublicKeyInfo DER"""
        public_key = Ed25519PublicKey.from_public_bytes(self.public_key_raw)
        return public_key.public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)

    @property
    def public_key_pem(self) -> bytes:
        """X.509 SubjectPublicKeyInfo PEM"""
        public_key = Ed25519PublicKey.from_public_bytes(self.public_key_raw)
        return public_key.public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)


def _read_tlv(data: bytes, offset: int) -> Tuple[int, bytes, int]:
    """
    Read one DER tag-length-value starting at *offset*.

    Returns (tag, value, offset_after_value). Only definite, minimally
    encoded lengths are accepted.
    """
    if offset + 2 > len(data):
        raise KeyFormatError("Truncated DER: missing tag or length")
    tag = data[offset]
    first = data[offset + 1]
    pos = offset + 2

    if first < 0x80:
        length = first
    elif first == 0x80:
        raise KeyFormatError("Indefinite DER length is not allowed")
    else:
        num_bytes = first & 0x7f
        if num_bytes > 4 or pos + num_bytes > len(data):
            raise KeyFormatError("Invalid DER long-form length")
        length_bytes = data[pos:pos + num_bytes]
        if length_bytes[0] == 0:
            raise KeyFormatError("Non-minimal DER length encoding")
        length = int.from_bytes(length_bytes, "big")
        if length < 0x80:
            raise KeyFormatError("Non-minimal DER length encoding")
        pos += num_bytes

    end = pos + length
    if end > len(data):
        raise KeyFormatError(f"Truncated DER: value needs {length} bytes, {len(data) - pos} available")
    return tag, data[pos:end], end


def decode_ed25519_spki_der(der: bytes) -> bytes:
    """
    Extract the raw public key from an Ed25519 SubjectPublicKeyInfo.

    Expected structure (RFC 8410):
    SEQUENCE {
        SEQUENCE { OBJECT IDENTIFIER 1.3.101.112 }   -- no parameters
        BIT STRING { 00, <32 key bytes> }
    }

    Every element is checked; trailing data at any level is rejected.
    """
    tag, spki, end = _read_tlv(der, 0)
    if tag != _TAG_SEQUENCE:
        raise KeyFormatError(f"SPKI must start with SEQUENCE, got tag 0x{tag:02x}")
    if end != len(der):
        raise KeyFormatError("Trailing bytes after SubjectPublicKeyInfo")

    tag, algorithm, pos = _read_tlv(spki, 0)
    if tag != _TAG_SEQUENCE:
        raise KeyFormatError(f"AlgorithmIdentifier must be SEQUENCE, got tag 0x{tag:02x}")

    oid_tag, oid, oid_end = _read_tlv(algorithm, 0)
    if oid_tag != _TAG_OID:
        raise KeyFormatError(f"Expected OBJECT IDENTIFIER, got tag 0x{oid_tag:02x}")
    if oid != ED25519_OID:
        raise KeyFormatError(f"Not an Ed25519 key: algorithm OID {oid.hex()}")
    if oid_end != len(algorithm):
        raise KeyFormatError("Ed25519 AlgorithmIdentifier must not carry parameters")

    tag, bit_string, pos = _read_tlv(spki, pos)
    if tag != _TAG_BIT_STRING:
        raise KeyFormatError(f"Expected BIT STRING, got tag 0x{tag:02x}")
    if pos != len(spki):
        raise KeyFormatError("Unexpected element after subjectPublicKey")
    if not bit_string or bit_string[0] != 0:
        raise KeyFormatError("subjectPublicKey must have zero unused bits")

    key = bit_string[1:]
    if len(key) != ED25519_KEY_SIZE:
        raise KeyFormatError(f"Ed25519 public key must be {ED25519_KEY_SIZE} bytes, got {len(key)}")
    return key


class KeyGenerator:
    """Ed25519 key pair generator and parser using PyNaCl"""

    @staticmethod
    def generate_ed25519_keypair() -> KeyPair:
        """
        Generate a fresh Ed25519 key pair.

        Nothing is written to disk; see key_store.persist_keypair.
        """
        keypair = KeyPair(signing.SigningKey.generate())
        logger.info(f"Generated Ed25519 key pair, public key: {keypair.public_key_raw_base64}")
        return keypair

    @staticmethod
    def from_seed(seed: bytes) -> KeyPair:
        """Build a key pair from a 32-byte private seed"""
        if len(seed) != ED25519_KEY_SIZE:
            raise KeyFormatError(f"Ed25519 seed must be {ED25519_KEY_SIZE} bytes, got {len(seed)}")
        try:
            return KeyPair(signing.SigningKey(seed))
        except (nacl_exceptions.CryptoError, TypeError, ValueError) as e:
            raise KeyFormatError(f"Invalid Ed25519 seed: {e}") from e

    @staticmethod
    def load_private_key_pem(pem: bytes) -> KeyPair:
        """
        Parse a PKCS8 PEM private key.

        Raises KeyFormatError for anything that is not an unencrypted
        Ed25519 private key.
        """
        try:
            private_key = load_pem_private_key(pem, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyFormatError(f"Cannot parse private key PEM: {e}") from e

        if not isinstance(private_key, Ed25519PrivateKey):
            raise KeyFormatError(
                f"Expected an Ed25519 private key, got {type(private_key).__name__}"
            )
        seed = private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return KeyGenerator.from_seed(seed)

    @staticmethod
    def raw_public_key(keypair: KeyPair) -> bytes:
        """
        Return the 32-byte public key by decoding the SPKI encoding.

        The decoded value is cross-checked against the key PyNaCl derives
        from the seed.
        """
        raw = decode_ed25519_spki_der(keypair.public_key_der)
        if raw != keypair.public_key_raw:
            raise KeyFormatError("Decoded SPKI public key does not match the private key")
        return raw


# Singleton instance
key_generator = KeyGenerator()
