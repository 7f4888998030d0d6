"""Errors raised by the node RPC client.

The client classifies every node error when it is raised, so callers can
branch on exception type instead of matching message text.
"""

from __future__ import annotations

import enum

# bitcoind-style RPC_INVALID_ADDRESS_OR_KEY, returned for unknown txids
RPC_INVALID_ADDRESS_OR_KEY = -5

_VISIBILITY_MARKERS = (
    "non-wallet transaction",
    "no such mempool or blockchain transaction",
)


class ErrorClass(str, enum.Enum):
    TRANSIENT_VISIBILITY = "transient_visibility"
    DEFINITIVE = "definitive"


def classify_rpc_error(code: int | None, message: str) -> ErrorClass:
    """Decide whether a node error means "transaction not visible yet".

    A freshly broadcast transaction may not be indexed by the wallet (or the
    mempool lookup) for a short while; the node reports this as an invalid
    id.  Everything else is definitive.
    """
    text = (message or "").lower()
    if "non-wallet transaction" in text:
        return ErrorClass.TRANSIENT_VISIBILITY
    if code == RPC_INVALID_ADDRESS_OR_KEY and any(m in text for m in _VISIBILITY_MARKERS):
        return ErrorClass.TRANSIENT_VISIBILITY
    return ErrorClass.DEFINITIVE


class RpcError(Exception):
    """The node returned an error, or could not be reached."""

    classification = ErrorClass.DEFINITIVE

    def __init__(self, message: str, code: int | None = None, method: str | None = None):
        self.message = message
        self.code = code
        self.method = method
        prefix = f"{method}: " if method else ""
        suffix = f" (code {code})" if code is not None else ""
        super().__init__(f"{prefix}{message}{suffix}")


class TransientNotYetVisible(RpcError):
    """The transaction is not yet known to the node's wallet or mempool."""

    classification = ErrorClass.TRANSIENT_VISIBILITY


class RpcConnectionError(RpcError):
    """Raised when the node cannot be reached."""

    def __init__(self, url: str, detail: str = "", method: str | None = None):
        self.url = url
        msg = f"Cannot connect to node RPC at {url}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg, method=method)


class RpcAuthenticationError(RpcError):
    """The node rejected the RPC credentials."""


def rpc_error_from_response(error: dict, method: str | None = None) -> RpcError:
    """Build the right ``RpcError`` subclass from a JSON-RPC error object."""
    code = error.get("code")
    message = str(error.get("message", error))
    if classify_rpc_error(code, message) is ErrorClass.TRANSIENT_VISIBILITY:
        return TransientNotYetVisible(message, code=code, method=method)
    return RpcError(message, code=code, method=method)
