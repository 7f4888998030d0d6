"""
JSON-RPC client for a Verus node.

Wraps the handful of node calls identity registration needs.  The client
holds no per-call state apart from a request id counter, so a single
instance can be shared between threads.
"""

from __future__ import annotations

import itertools
import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

import httpx

from identitycreator.address import Address
from identitycreator.rpc.conf import load_node_config
from identitycreator.rpc.errors import (
    RpcAuthenticationError,
    RpcConnectionError,
    RpcError,
    rpc_error_from_response,
)
from identitycreator.rpc.schemas import NameCommitment, TransactionInfo, validate_txid
from identitycreator.settings import Settings

logger = logging.getLogger(__name__)


class VerusClient:
    """Thin JSON-RPC 1.0 client for the node's RPC port."""

    def __init__(
        self,
        url: str,
        user: str,
        password: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self._ids = itertools.count(1)
        self._http = httpx.Client(
            base_url=self.url,
            auth=(user, password),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def for_chain(cls, chain: str, settings: Settings) -> VerusClient:
        """Build a client for *chain*.

        Explicit ``IDENTITYCREATOR_RPC_*`` settings win; anything left empty
        is read from the node's ``<CHAIN>.conf``.
        """
        url, user, password = settings.RPC_URL, settings.RPC_USER, settings.RPC_PASSWORD
        if not (url and user and password):
            node = load_node_config(chain, settings.NODE_DATA_DIR or None)
            url = url or node.url
            user = user or node.rpc_user
            password = password or node.rpc_password

        logger.info("Using node RPC at %s for chain %s", url, chain)
        return cls(url, user, password, timeout=settings.RPC_TIMEOUT)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> VerusClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def call(self, method: str, *params: Any) -> Any:
        """Invoke *method* and return its ``result``.

        Raises ``RpcError`` (or a subclass) when the node reports an error
        or the request cannot be completed.
        """
        payload = {
            "jsonrpc": "1.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params),
        }
        logger.debug("rpc -> %s %s", method, payload["params"])

        try:
            response = self._http.post("/", json=payload)
        except httpx.HTTPError as exc:
            raise RpcConnectionError(self.url, str(exc), method=method) from exc

        if response.status_code in (401, 403):
            raise RpcAuthenticationError(
                f"node rejected credentials (HTTP {response.status_code})",
                method=method,
            )

        # bitcoind-style nodes answer RPC errors with HTTP 500 and a JSON body
        try:
            body = response.json()
        except json.JSONDecodeError as exc:
            raise RpcError(
                f"HTTP {response.status_code}: {response.text[:500]}",
                method=method,
            ) from exc

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            raise rpc_error_from_response(error, method=method)

        if response.status_code >= 400:
            raise RpcError(f"HTTP {response.status_code}", method=method)

        result = body.get("result") if isinstance(body, dict) else None
        logger.debug("rpc <- %s %r", method, result)
        return result

    # ------------------------------------------------------------------
    # Node operations
    # ------------------------------------------------------------------

    def registernamecommitment(
        self,
        name: str,
        control_address: Address | str,
        referral: str | None = None,
        parent: str | None = None,
    ) -> NameCommitment:
        params: list[Any] = [name, str(control_address)]
        if referral or parent:
            params.append(referral or "")
        if parent:
            params.append(parent)

        result = self.call("registernamecommitment", *params)
        return _parse(NameCommitment, result, "registernamecommitment")

    def get_transaction(
        self, txid: str, include_watch_only: bool | None = None
    ) -> TransactionInfo:
        params: list[Any] = [txid]
        if include_watch_only is not None:
            params.append(include_watch_only)

        result = self.call("gettransaction", *params)
        return _parse(TransactionInfo, result, "gettransaction")

    def get_raw_transaction_verbose(self, txid: str) -> TransactionInfo:
        result = self.call("getrawtransaction", txid, 1)
        return _parse(TransactionInfo, result, "getrawtransaction")

    def registeridentity(
        self,
        commitment: NameCommitment,
        primary_addresses: Iterable[Address | str],
        minimum_signatures: int | None = None,
        private_address: str | None = None,
        parent: str | None = None,
        content_map: Mapping[str, str] | None = None,
    ) -> str:
        identity: dict[str, Any] = {
            "name": commitment.name_reservation.name,
            "primaryaddresses": [str(a) for a in primary_addresses],
        }
        if minimum_signatures is not None:
            identity["minimumsignatures"] = minimum_signatures
        if private_address:
            identity["privateaddress"] = private_address
        if parent:
            identity["parent"] = parent
        if content_map:
            identity["contentmap"] = dict(content_map)

        request = commitment.to_rpc()
        request["identity"] = identity

        result = self.call("registeridentity", request)
        try:
            return validate_txid(result)
        except ValueError as exc:
            raise RpcError(
                f"unexpected registeridentity result: {result!r}",
                method="registeridentity",
            ) from exc


def _parse(model, result: Any, method: str):
    """Validate a raw RPC result into *model*, as an ``RpcError`` on failure."""
    try:
        return model.model_validate(result)
    except ValueError as exc:
        raise RpcError(f"unexpected {method} result: {exc}", method=method) from exc
