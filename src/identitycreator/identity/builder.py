"""
Identity request building and validation.

``IdentityConfig`` holds unvalidated parameters; ``validate_config`` turns
one into an immutable ``IdentityRequest`` or raises the first
``ValidationError`` it finds.  ``IdentityRequestBuilder`` is a fluent facade
over a single config.  Nothing here touches the network.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from identitycreator.address import Address
from identitycreator.identity.errors import (
    InvalidContentMap,
    InvalidMinimumSignatures,
    MissingName,
    MissingPrimaryAddress,
)
from identitycreator.identity.schemas import IdentityRequest

logger = logging.getLogger(__name__)

# Content map entries are uint160 -> uint256 on the node
CONTENT_MAP_KEY_MAX_BYTES = 20
CONTENT_MAP_VALUE_MAX_BYTES = 32

_HEX_RE = re.compile(r"^(?:[0-9a-fA-F]{2})*$")


class IdentityConfig:
    """Mutable, unvalidated identity parameters."""

    def __init__(self) -> None:
        self.name: str | None = None
        self.currency_context: str | None = None
        self.referral: str | None = None
        self.minimum_signatures: int | None = None
        self.primary_addresses: list[Address] = []
        self.private_address: str | None = None
        self.content_map: Any = None
        self.testnet: bool = False


def validate_config(config: IdentityConfig) -> IdentityRequest:
    """Check *config* and return the matching ``IdentityRequest``.

    Checks run in a fixed order and the first failure is raised:
    minimum signatures, name, primary addresses, content map.
    """
    addresses = list(config.primary_addresses)

    if config.minimum_signatures is not None:
        if config.minimum_signatures < 1:
            raise InvalidMinimumSignatures(
                f"minimum_signatures must be at least 1, got {config.minimum_signatures}"
            )
        if addresses and config.minimum_signatures > len(addresses):
            raise InvalidMinimumSignatures(
                "Cannot have more minimum_signatures than there are primary addresses "
                f"({config.minimum_signatures} > {len(addresses)})"
            )

    if config.name is None or not config.name.strip():
        raise MissingName("No identity name was given")

    if not addresses:
        raise MissingPrimaryAddress("no primary address given, need at least 1")

    content_map = None
    if config.content_map is not None:
        content_map = _check_content_map(config.content_map)

    return IdentityRequest(
        name=config.name,
        primary_addresses=tuple(addresses),
        minimum_signatures=config.minimum_signatures or 1,
        currency_context=config.currency_context,
        referral=config.referral,
        private_address=config.private_address,
        content_map=content_map,
        testnet=config.testnet,
    )


def _check_content_map(content_map: Any) -> dict[str, str]:
    if not isinstance(content_map, Mapping):
        raise InvalidContentMap(
            f"content map must be an object, got {type(content_map).__name__}"
        )

    logger.debug("content map: %r", dict(content_map))

    for key, value in content_map.items():
        if not isinstance(key, str) or not _HEX_RE.match(key):
            raise InvalidContentMap(f"key is not valid hex: {key!r}")
        if len(key) // 2 > CONTENT_MAP_KEY_MAX_BYTES:
            raise InvalidContentMap(
                f"key length {len(key) // 2} bytes too long, max {CONTENT_MAP_KEY_MAX_BYTES}"
            )

        if not isinstance(value, str):
            raise InvalidContentMap(f"wrong type for contentmap value: {value!r}")
        if not _HEX_RE.match(value):
            raise InvalidContentMap(f"value is not valid hex: {value!r}")
        if len(value) // 2 > CONTENT_MAP_VALUE_MAX_BYTES:
            raise InvalidContentMap(
                f"value length {len(value) // 2} bytes too long, max {CONTENT_MAP_VALUE_MAX_BYTES}"
            )

    return dict(content_map)


class IdentityRequestBuilder:
    """Chainable setters over an ``IdentityConfig``.

    The first address added is the controlling address for the name
    commitment::

        request = (
            IdentityRequestBuilder()
            .set_name("alice")
            .add_primary_address("RP1sexQNvjGPohJkK9JnuPDH7V7NboycGj")
            .validate()
        )
    """

    def __init__(self, config: IdentityConfig | None = None) -> None:
        self.config = config or IdentityConfig()

    def set_name(self, name: str) -> IdentityRequestBuilder:
        self.config.name = name
        return self

    def set_referral(self, referral: str) -> IdentityRequestBuilder:
        self.config.referral = referral
        return self

    def set_currency_context(self, currency: str) -> IdentityRequestBuilder:
        self.config.currency_context = currency
        return self

    def set_minimum_signatures(self, n: int) -> IdentityRequestBuilder:
        self.config.minimum_signatures = n
        return self

    def add_primary_address(self, address: Address | str) -> IdentityRequestBuilder:
        """Append a primary address; strings are parsed immediately."""
        if not isinstance(address, Address):
            address = Address.from_str(address)
        self.config.primary_addresses.append(address)
        return self

    def set_private_address(self, address: str) -> IdentityRequestBuilder:
        self.config.private_address = address
        return self

    def set_content_map(self, content_map: Mapping[str, str]) -> IdentityRequestBuilder:
        self.config.content_map = content_map
        return self

    def set_network(self, testnet: bool) -> IdentityRequestBuilder:
        self.config.testnet = testnet
        return self

    def validate(self) -> IdentityRequest:
        return validate_config(self.config)
