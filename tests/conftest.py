"""Shared fixtures for signer tests."""
import pytest

from bap_signer.services.key_generator import key_generator
from bap_signer.services.signature import BecknSigner

# RFC 8032 section 7.1, test 1
RFC8032_SEED = bytes.fromhex(
    "9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60"
)
RFC8032_PUBLIC = bytes.fromhex(
    "d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a"
)
SUBSCRIBER_ID = "bap.example.org"


@pytest.fixture
def keypair():
    """Deterministic key pair from the RFC 8032 test vector."""
    return key_generator.from_seed(RFC8032_SEED)


@pytest.fixture
def key_dir(tmp_path):
    return tmp_path / "keys"


@pytest.fixture
def signer(keypair):
    return BecknSigner(keypair, SUBSCRIBER_ID)


@pytest.fixture
def search_payload():
    return {
        "context": {
            "domain": "uei:charging",
            "action": "search",
            "bap_id": SUBSCRIBER_ID,
            "bap_uri": "https://bap.example.org",
            "transaction_id": "6d5f4b5e-0000-4000-8000-000000000001",
            "message_id": "6d5f4b5e-0000-4000-8000-000000000002",
        },
        "message": {
            "intent": {
                "fulfillment": {
                    "start": {"location": {"gps": "12.9715987,77.5945627"}}
                }
            }
        },
    }
