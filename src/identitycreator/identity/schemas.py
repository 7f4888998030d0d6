"""Pydantic v2 schemas for identity requests and results."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, field_validator

from identitycreator.address import Address
from identitycreator.rpc.schemas import NameCommitment
from identitycreator.settings import settings


class IdentityRequest(BaseModel):
    """A validated, immutable registration request.

    Only ``validate_config`` should construct one; the model itself does not
    re-check the invariants.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    primary_addresses: tuple[Address, ...]
    minimum_signatures: int = 1
    currency_context: str | None = None
    referral: str | None = None
    private_address: str | None = None
    content_map: Mapping[str, str] | None = None
    testnet: bool = False

    @field_validator("content_map")
    @classmethod
    def _freeze_content_map(cls, value):
        return None if value is None else MappingProxyType(dict(value))

    @property
    def controlling_address(self) -> Address:
        return self.primary_addresses[0]

    @property
    def chain(self) -> str:
        return settings.chain_name(self.testnet)


class IdentityRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name_commitment: NameCommitment
    registration_transaction_id: str
