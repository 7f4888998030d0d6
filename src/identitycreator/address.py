"""
Transparent Verus addresses.

Addresses are base58check strings wrapping a one-byte version prefix and a
20-byte hash.  Only the prefixes a node accepts as identity primary or
controlling addresses are recognised.
"""

from __future__ import annotations

import base58

# Version byte -> address kind
ADDRESS_VERSIONS: dict[int, str] = {
    60: "pubkey",  # R...
    85: "script",  # b...
    102: "identity",  # i...
}

_PAYLOAD_LENGTH = 21


class InvalidAddress(ValueError):
    """Raised when a string is not a well-formed Verus address."""

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"invalid address {value!r}: {reason}")


class Address:
    """A validated base58check address."""

    __slots__ = ("_encoded", "version")

    def __init__(self, encoded: str, version: int) -> None:
        self._encoded = encoded
        self.version = version

    @classmethod
    def from_str(cls, value: str) -> Address:
        """Parse and checksum-verify *value*."""
        if not isinstance(value, str) or not value.strip():
            raise InvalidAddress(str(value), "empty address")
        value = value.strip()

        try:
            payload = base58.b58decode_check(value)
        except ValueError as exc:
            raise InvalidAddress(value, str(exc)) from exc

        if len(payload) != _PAYLOAD_LENGTH:
            raise InvalidAddress(
                value, f"payload is {len(payload)} bytes, expected {_PAYLOAD_LENGTH}"
            )

        version = payload[0]
        if version not in ADDRESS_VERSIONS:
            raise InvalidAddress(value, f"unknown version byte {version}")

        return cls(value, version)

    @property
    def kind(self) -> str:
        return ADDRESS_VERSIONS[self.version]

    def __str__(self) -> str:
        return self._encoded

    def __repr__(self) -> str:
        return f"Address({self._encoded!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Address):
            return self._encoded == other._encoded
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._encoded)
