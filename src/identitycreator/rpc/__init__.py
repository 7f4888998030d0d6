"""Node RPC collaborator: client, response schemas and error classification."""

from identitycreator.rpc.client import VerusClient
from identitycreator.rpc.conf import NodeConfig, NodeConfigError, load_node_config
from identitycreator.rpc.errors import (
    ErrorClass,
    RpcAuthenticationError,
    RpcConnectionError,
    RpcError,
    TransientNotYetVisible,
    classify_rpc_error,
)
from identitycreator.rpc.schemas import NameCommitment, NameReservation, TransactionInfo

__all__ = [
    "ErrorClass",
    "NameCommitment",
    "NameReservation",
    "NodeConfig",
    "NodeConfigError",
    "RpcAuthenticationError",
    "RpcConnectionError",
    "RpcError",
    "TransactionInfo",
    "TransientNotYetVisible",
    "VerusClient",
    "classify_rpc_error",
    "load_node_config",
]
