"""Pydantic v2 schemas for node RPC responses."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TXID_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def validate_txid(value: str) -> str:
    """Return *value* if it is a 64-character hex transaction id."""
    if not isinstance(value, str) or not _TXID_RE.match(value):
        raise ValueError(f"not a transaction id: {value!r}")
    return value.lower()


class NameReservation(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: int | None = None
    name: str
    parent: str | None = None
    salt: str | None = None
    referral: str | None = None
    nameid: str | None = None


class NameCommitment(BaseModel):
    """Result of ``registernamecommitment``.

    Only the txid and the reserved name are inspected; every other field is
    kept as returned so the commitment can be handed back to
    ``registeridentity`` unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    transaction_id: str = Field(alias="txid")
    name_reservation: NameReservation = Field(alias="namereservation")

    @field_validator("transaction_id")
    @classmethod
    def _check_txid(cls, value: str) -> str:
        return validate_txid(value)

    def to_rpc(self) -> dict:
        """Serialise back to the node's wire shape."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TransactionInfo(BaseModel):
    """Subset of ``gettransaction`` / verbose ``getrawtransaction`` output."""

    model_config = ConfigDict(extra="allow")

    txid: str | None = None
    confirmations: int = 0

    @field_validator("confirmations", mode="before")
    @classmethod
    def _missing_is_zero(cls, value):
        return 0 if value is None else value
