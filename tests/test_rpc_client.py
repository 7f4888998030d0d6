"""Tests for the node JSON-RPC client, using httpx's mock transport."""

from __future__ import annotations

import json
from types import MappingProxyType

import httpx
import pytest

from identitycreator.address import Address
from identitycreator.rpc import (
    ErrorClass,
    RpcAuthenticationError,
    RpcConnectionError,
    RpcError,
    TransientNotYetVisible,
    VerusClient,
    classify_rpc_error,
)
from identitycreator.settings import Settings

from conftest import ADDRESS, COMMITMENT_TXID, REGISTRATION_TXID, make_commitment


class _FakeRpcServer:
    """Answers JSON-RPC posts from a ``method -> result`` table."""

    def __init__(self, results: dict | None = None, status_code: int = 200):
        self.results = results or {}
        self.status_code = status_code
        self.requests: list[dict] = []
        self.auth_headers: list[str | None] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        self.auth_headers.append(request.headers.get("Authorization"))

        outcome = self.results.get(body["method"])
        if isinstance(outcome, dict) and "code" in outcome:
            return httpx.Response(
                500, json={"result": None, "error": outcome, "id": body["id"]}
            )
        return httpx.Response(
            self.status_code, json={"result": outcome, "error": None, "id": body["id"]}
        )


def _client(server) -> VerusClient:
    return VerusClient(
        "http://127.0.0.1:18843",
        "user",
        "pass",
        transport=httpx.MockTransport(server),
    )


# ---------------------------------------------------------------------------
# Wire format
# ---------------------------------------------------------------------------


class TestCall:
    def test_request_envelope(self):
        server = _FakeRpcServer({"getinfo": {"blocks": 1}})
        with _client(server) as client:
            assert client.call("getinfo") == {"blocks": 1}
            client.call("getinfo")

        first, second = server.requests
        assert first["jsonrpc"] == "1.0"
        assert first["method"] == "getinfo"
        assert first["params"] == []
        assert second["id"] == first["id"] + 1
        assert server.auth_headers[0].startswith("Basic ")

    def test_node_error_raises(self):
        server = _FakeRpcServer({"getinfo": {"code": -8, "message": "bad param"}})
        with pytest.raises(RpcError) as excinfo:
            _client(server).call("getinfo")

        assert excinfo.value.code == -8
        assert excinfo.value.method == "getinfo"
        assert excinfo.value.classification is ErrorClass.DEFINITIVE
        assert not isinstance(excinfo.value, TransientNotYetVisible)

    def test_non_wallet_error_is_transient(self):
        server = _FakeRpcServer(
            {"gettransaction": {"code": -5, "message": "Invalid or non-wallet transaction id"}}
        )
        with pytest.raises(TransientNotYetVisible):
            _client(server).get_transaction(COMMITMENT_TXID, include_watch_only=False)

    def test_unauthorised(self):
        def handler(request):
            return httpx.Response(401, text="")

        with pytest.raises(RpcAuthenticationError):
            _client(handler).call("getinfo")

    def test_non_json_body(self):
        def handler(request):
            return httpx.Response(502, text="<html>bad gateway</html>")

        with pytest.raises(RpcError, match="HTTP 502"):
            _client(handler).call("getinfo")

    def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RpcConnectionError, match="Cannot connect"):
            _client(handler).call("getinfo")


# ---------------------------------------------------------------------------
# Node operations
# ---------------------------------------------------------------------------


class TestOperations:
    def test_registernamecommitment(self):
        commitment = make_commitment("aaaaah").to_rpc()
        server = _FakeRpcServer({"registernamecommitment": commitment})

        result = _client(server).registernamecommitment("aaaaah", Address.from_str(ADDRESS))

        assert server.requests[0]["params"] == ["aaaaah", ADDRESS]
        assert result.transaction_id == COMMITMENT_TXID
        assert result.name_reservation.name == "aaaaah"

    def test_registernamecommitment_parent_without_referral(self):
        server = _FakeRpcServer({"registernamecommitment": make_commitment().to_rpc()})

        _client(server).registernamecommitment("aaaaah", ADDRESS, None, "geckotest")

        assert server.requests[0]["params"] == ["aaaaah", ADDRESS, "", "geckotest"]

    def test_registernamecommitment_with_referral(self):
        server = _FakeRpcServer({"registernamecommitment": make_commitment().to_rpc()})

        _client(server).registernamecommitment("aaaaah", ADDRESS, "bob@")

        assert server.requests[0]["params"] == ["aaaaah", ADDRESS, "bob@"]

    def test_commitment_keeps_unknown_fields(self):
        payload = make_commitment().to_rpc()
        payload["hex"] = "0400008085"
        server = _FakeRpcServer({"registernamecommitment": payload})

        result = _client(server).registernamecommitment("aaaaah", ADDRESS)

        assert result.to_rpc()["hex"] == "0400008085"

    def test_malformed_commitment(self):
        server = _FakeRpcServer({"registernamecommitment": {"txid": "nope"}})
        with pytest.raises(RpcError, match="unexpected registernamecommitment result"):
            _client(server).registernamecommitment("aaaaah", ADDRESS)

    def test_get_transaction(self):
        server = _FakeRpcServer({"gettransaction": {"txid": COMMITMENT_TXID, "confirmations": 3}})

        info = _client(server).get_transaction(COMMITMENT_TXID, include_watch_only=False)

        assert info.confirmations == 3
        assert server.requests[0]["params"] == [COMMITMENT_TXID, False]

    def test_raw_transaction_without_confirmations(self):
        """Mempool transactions come back without a confirmations field."""
        server = _FakeRpcServer({"getrawtransaction": {"txid": COMMITMENT_TXID}})

        info = _client(server).get_raw_transaction_verbose(COMMITMENT_TXID)

        assert info.confirmations == 0
        assert server.requests[0]["params"] == [COMMITMENT_TXID, 1]

    def test_registeridentity(self):
        server = _FakeRpcServer({"registeridentity": REGISTRATION_TXID})
        commitment = make_commitment("aaaaah")

        txid = _client(server).registeridentity(
            commitment,
            [Address.from_str(ADDRESS)],
            1,
            "zs1abc",
            "geckotest",
            {"deadbeef": "deadbeef"},
        )

        assert txid == REGISTRATION_TXID
        (sent,) = server.requests[0]["params"]
        assert sent["txid"] == COMMITMENT_TXID
        assert sent["namereservation"]["name"] == "aaaaah"
        assert sent["identity"] == {
            "name": "aaaaah",
            "primaryaddresses": [ADDRESS],
            "minimumsignatures": 1,
            "privateaddress": "zs1abc",
            "parent": "geckotest",
            "contentmap": {"deadbeef": "deadbeef"},
        }

    def test_registeridentity_omits_unset_fields(self):
        server = _FakeRpcServer({"registeridentity": REGISTRATION_TXID})

        _client(server).registeridentity(make_commitment(), [ADDRESS])

        (sent,) = server.requests[0]["params"]
        assert sent["identity"] == {"name": "aaaaah", "primaryaddresses": [ADDRESS]}

    def test_registeridentity_read_only_content_map(self):
        server = _FakeRpcServer({"registeridentity": REGISTRATION_TXID})

        _client(server).registeridentity(
            make_commitment(), [ADDRESS], content_map=MappingProxyType({"00": "ff"})
        )

        (sent,) = server.requests[0]["params"]
        assert sent["identity"]["contentmap"] == {"00": "ff"}

    def test_registeridentity_bad_result(self):
        server = _FakeRpcServer({"registeridentity": {"unexpected": True}})
        with pytest.raises(RpcError):
            _client(server).registeridentity(make_commitment(), [ADDRESS])


# ---------------------------------------------------------------------------
# Classification and construction
# ---------------------------------------------------------------------------


class TestClassification:
    @pytest.mark.parametrize(
        "code,message,expected",
        [
            (-5, "Invalid or non-wallet transaction id", ErrorClass.TRANSIENT_VISIBILITY),
            (-5, "No such mempool or blockchain transaction. Use gettransaction", ErrorClass.TRANSIENT_VISIBILITY),
            (None, "Invalid or non-wallet transaction id", ErrorClass.TRANSIENT_VISIBILITY),
            (-5, "Invalid address", ErrorClass.DEFINITIVE),
            (-8, "No such mempool or blockchain transaction", ErrorClass.DEFINITIVE),
            (-28, "Loading block index...", ErrorClass.DEFINITIVE),
        ],
    )
    def test_classify(self, code, message, expected):
        assert classify_rpc_error(code, message) is expected


class TestForChain:
    def test_explicit_settings_win(self, tmp_path):
        cfg = Settings(
            RPC_URL="http://node:1234",
            RPC_USER="u",
            RPC_PASSWORD="p",
            NODE_DATA_DIR=str(tmp_path),
        )
        client = VerusClient.for_chain("vrsctest", cfg)
        assert client.url == "http://node:1234"
        client.close()

    def test_reads_node_config(self, tmp_path):
        chain_dir = tmp_path / "vrsctest"
        chain_dir.mkdir()
        (chain_dir / "vrsctest.conf").write_text("rpcuser=alice\nrpcpassword=secret\n")

        client = VerusClient.for_chain("vrsctest", Settings(NODE_DATA_DIR=str(tmp_path)))
        assert client.url == "http://127.0.0.1:18843"
        client.close()
