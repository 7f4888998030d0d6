"""Shared pytest fixtures for identitycreator tests.

``FakeNode`` stands in for ``VerusClient`` so the registration protocol can
be exercised without a running node.  Each lookup is answered by a
``respond(attempt)`` callable which returns a ``TransactionInfo`` or raises.
"""

from __future__ import annotations

from collections import Counter
from typing import Callable

import pytest

from identitycreator.identity import IdentityRequestBuilder
from identitycreator.rpc.errors import RpcError, TransientNotYetVisible
from identitycreator.rpc.schemas import NameCommitment, TransactionInfo
from identitycreator.settings import Settings

ADDRESS = "RP1sexQNvjGPohJkK9JnuPDH7V7NboycGj"
COMMITMENT_TXID = "a" * 64
REGISTRATION_TXID = "b" * 64


def make_commitment(name: str = "aaaaah", txid: str = COMMITMENT_TXID) -> NameCommitment:
    return NameCommitment.model_validate(
        {
            "txid": txid,
            "namereservation": {
                "version": 1,
                "name": name,
                "parent": "iJhCezBExJHvtyH3fGhNnt2NhU4Ztkf2yq",
                "salt": "4a7e2ad4fb2c3e7d0c4e2a5d9a3c8e5f1b2d6c7e8f9a0b1c2d3e4f5a6b7c8d9e",
                "referral": "",
                "nameid": "iBr8dPQdDUiwd5Q3RgjK7bjiQR4uDFQC4Z",
            },
        }
    )


def non_wallet_error() -> TransientNotYetVisible:
    return TransientNotYetVisible(
        "Invalid or non-wallet transaction id", code=-5, method="gettransaction"
    )


def confirmed(attempt: int) -> TransactionInfo:
    return TransactionInfo(confirmations=1)


class FakeNode:
    """Records every call and answers with canned results."""

    def __init__(
        self,
        respond: Callable[[int], TransactionInfo] = confirmed,
        commit_error: RpcError | None = None,
        register_error: RpcError | None = None,
    ) -> None:
        self.respond = respond
        self.commit_error = commit_error
        self.register_error = register_error
        self.counts: Counter[str] = Counter()
        self.commit_args: tuple | None = None
        self.register_args: tuple | None = None

    def registernamecommitment(self, name, control_address, referral=None, parent=None):
        self.counts["registernamecommitment"] += 1
        self.commit_args = (name, str(control_address), referral, parent)
        if self.commit_error is not None:
            raise self.commit_error
        return make_commitment(name)

    def get_transaction(self, txid, include_watch_only=None):
        self.counts["get_transaction"] += 1
        return self.respond(self.lookups)

    def get_raw_transaction_verbose(self, txid):
        self.counts["get_raw_transaction_verbose"] += 1
        return self.respond(self.lookups)

    def registeridentity(
        self,
        commitment,
        primary_addresses,
        minimum_signatures=None,
        private_address=None,
        parent=None,
        content_map=None,
    ):
        self.counts["registeridentity"] += 1
        self.register_args = (
            commitment,
            [str(a) for a in primary_addresses],
            minimum_signatures,
            private_address,
            parent,
            content_map,
        )
        if self.register_error is not None:
            raise self.register_error
        return REGISTRATION_TXID

    @property
    def lookups(self) -> int:
        return self.counts["get_transaction"] + self.counts["get_raw_transaction_verbose"]


@pytest.fixture()
def fast_settings() -> Settings:
    """Settings with polling intervals collapsed to zero."""
    return Settings(
        CONFIRMATION_POLL_INTERVAL=0.0,
        VISIBILITY_RETRY_INTERVAL=0.0,
        VISIBILITY_MAX_RETRIES=20000,
        TX_LOOKUP="wallet",
    )


@pytest.fixture()
def builder() -> IdentityRequestBuilder:
    """A builder holding a minimal valid identity."""
    return IdentityRequestBuilder().set_name("test").add_primary_address(ADDRESS)


@pytest.fixture()
def identity_request():
    """The end-to-end request used throughout the registration tests."""
    return (
        IdentityRequestBuilder()
        .set_network(True)
        .set_currency_context("geckotest")
        .set_name("aaaaah")
        .add_primary_address(ADDRESS)
        .set_private_address(
            "zs1pf0pjumxr6k5zdwupl8tnl58gqrpklznxhypjlzp3reaqpxdh0ce7qj2u7qfp8z8mc9pc39epgm"
        )
        .set_minimum_signatures(1)
        .set_content_map({"deadbeef": "deadbeef"})
        .validate()
    )
