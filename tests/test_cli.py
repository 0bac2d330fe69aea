"""
Tests for the keys and gateway command-line tools.
"""
import json

import httpx
import pytest

from bap_signer.config import settings
from bap_signer.services import key_store
from bap_signer.services.canonical import compute_digest, digest_bytes
from bap_signer.services.gateway_client import GatewayClient
from bap_signer.services.signature import sign_digest
from cli import gateway_cli, keys_cli


@pytest.fixture
def payload_file(tmp_path):
    path = tmp_path / "payload.json"
    path.write_text(json.dumps({"b": 2, "a": 1}))
    return path


class TestGenerate:
    def test_generate(self, key_dir, capsys):
        keys_cli.main(["--dir", str(key_dir), "generate"])

        out = capsys.readouterr().out
        public_b64 = key_store.load_public_key_b64(key_dir)
        assert public_b64 in out
        assert (key_dir / key_store.PRIVATE_KEY_FILE).exists()

    def test_generate_refuses_existing_key(self, keypair, key_dir, capsys):
        key_store.persist_keypair(keypair, key_dir)

        with pytest.raises(SystemExit) as exc_info:
            keys_cli.main(["--dir", str(key_dir), "generate"])

        assert exc_info.value.code == 1
        assert "--force" in capsys.readouterr().out
        assert key_store.load_keypair(key_dir).seed == keypair.seed

    def test_generate_force(self, keypair, key_dir):
        key_store.persist_keypair(keypair, key_dir)
        keys_cli.main(["--dir", str(key_dir), "generate", "--force"])
        assert key_store.load_keypair(key_dir).seed != keypair.seed


class TestShowAndSign:
    def test_show(self, keypair, key_dir, capsys):
        key_store.persist_keypair(keypair, key_dir)
        keys_cli.main(["--dir", str(key_dir), "show"])
        assert capsys.readouterr().out.strip() == keypair.public_key_raw_base64

    def test_show_without_key(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            keys_cli.main(["--dir", str(tmp_path), "show"])
        assert exc_info.value.code == 1

    def test_sign(self, keypair, key_dir, payload_file, capsys):
        key_store.persist_keypair(keypair, key_dir)

        keys_cli.main([
            "--dir", str(key_dir), "sign", str(payload_file),
            "--subscriber-id", "bap.example.org",
        ])

        out = capsys.readouterr().out
        digest = compute_digest({"a": 1, "b": 2})
        assert f"Digest: {digest}" in out
        assert f'signature="{sign_digest(digest, keypair)}"' in out
        assert 'keyId="bap.example.org"' in out

    def test_sign_without_key(self, tmp_path, payload_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            keys_cli.main(["--dir", str(tmp_path), "sign", str(payload_file)])
        assert exc_info.value.code == 1
        assert "Cannot load signing key" in capsys.readouterr().out

    def test_verify(self, keypair, key_dir, payload_file, capsys):
        key_store.persist_keypair(keypair, key_dir)
        signature = sign_digest(compute_digest({"a": 1, "b": 2}), keypair)

        keys_cli.main(["--dir", str(key_dir), "verify", str(payload_file), signature])
        assert "Signature valid" in capsys.readouterr().out

    def test_verify_rejects_other_payload(self, keypair, key_dir, payload_file):
        key_store.persist_keypair(keypair, key_dir)
        signature = sign_digest(compute_digest({"a": 1}), keypair)

        with pytest.raises(SystemExit) as exc_info:
            keys_cli.main(["--dir", str(key_dir), "verify", str(payload_file), signature])
        assert exc_info.value.code == 1

    def test_no_command(self):
        with pytest.raises(SystemExit):
            keys_cli.main([])


class TestGatewayCli:
    def test_search_without_key_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            gateway_cli.main(["--dir", str(tmp_path), "search"])
        assert exc_info.value.code == 1
        assert "keys_cli.py generate" in capsys.readouterr().out

    def _use_transport(self, monkeypatch, handler):
        def make_client(*args, **kwargs):
            return GatewayClient(*args, transport=httpx.MockTransport(handler), **kwargs)

        monkeypatch.setattr(gateway_cli, "GatewayClient", make_client)

    def test_search_sends_signed_request(self, keypair, key_dir, monkeypatch, capsys):
        key_store.persist_keypair(keypair, key_dir)
        captured = []

        def handler(request):
            captured.append(request)
            return httpx.Response(200, json={"message": {"ack": {"status": "ACK"}}})

        self._use_transport(monkeypatch, handler)
        gateway_cli.main(["--dir", str(key_dir), "search", "--gps", "13.0,77.6", "--radius", "10"])

        assert len(captured) == 1
        request = captured[0]
        assert str(request.url) == f"{settings.BECKN_GATEWAY_URL}/search"
        body = json.loads(request.content)
        location = body["message"]["intent"]["fulfillment"]["start"]["location"]
        assert location["gps"] == "13.0,77.6"
        assert location["radius"]["value"] == "10"
        assert body["context"]["bap_id"] == settings.BAP_ID

        digest = request.headers["Digest"]
        assert digest == digest_bytes(request.content)
        assert f'keyId="{settings.BAP_ID}"' in request.headers["Authorization"]
        assert f'signature="{sign_digest(digest, keypair)}"' in request.headers["Authorization"]

        out = capsys.readouterr().out
        assert "Search forwarded to gateway" in out
        assert '"ACK"' in out

    def test_search_gateway_rejection_exits(self, keypair, key_dir, monkeypatch, capsys):
        key_store.persist_keypair(keypair, key_dir)

        def handler(request):
            return httpx.Response(401, text="Invalid Signature")

        self._use_transport(monkeypatch, handler)
        with pytest.raises(SystemExit) as exc_info:
            gateway_cli.main(["--dir", str(key_dir), "search"])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "401" in out
        assert "Invalid Signature" in out
