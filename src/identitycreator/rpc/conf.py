"""
Node configuration discovery.

A Verus node writes its RPC credentials to ``<datadir>/<CHAIN>/<CHAIN>.conf``.
This module locates and parses that file so the client can authenticate
the same way the node's own ``verus`` CLI does.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_RPC_HOST = "127.0.0.1"

# Default RPC ports per chain
DEFAULT_RPC_PORTS: dict[str, int] = {
    "VRSC": 27486,
    "vrsctest": 18843,
}


class NodeConfigError(Exception):
    """Raised when the node configuration is missing or unusable."""


class NodeConfig(BaseModel):
    chain: str
    rpc_user: str
    rpc_password: str
    rpc_host: str = DEFAULT_RPC_HOST
    rpc_port: int

    @property
    def url(self) -> str:
        return f"http://{self.rpc_host}:{self.rpc_port}"


def default_data_root() -> Path:
    """Return the platform-specific directory holding per-chain data dirs."""
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", Path.home())) / "Komodo"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Komodo"
    return Path.home() / ".komodo"


def config_path(chain: str, data_root: str | Path | None = None) -> Path:
    """Return the path of ``<CHAIN>.conf`` for *chain*."""
    root = Path(data_root) if data_root else default_data_root()
    return root / chain / f"{chain}.conf"


def parse_config(text: str) -> dict[str, str]:
    """Parse ``key=value`` lines, ignoring blanks and ``#`` comments.

    Later assignments win, matching the node's own parser.
    """
    values: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip()
    return values


def load_node_config(chain: str, data_root: str | Path | None = None) -> NodeConfig:
    """Read RPC credentials for *chain* from its configuration file."""
    path = config_path(chain, data_root)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise NodeConfigError(f"node config not found: {path}") from exc
    except OSError as exc:
        raise NodeConfigError(f"cannot read node config {path}: {exc}") from exc

    values = parse_config(text)
    user = values.get("rpcuser")
    password = values.get("rpcpassword")
    if not user or not password:
        raise NodeConfigError(f"rpcuser/rpcpassword missing from {path}")

    port_value = values.get("rpcport")
    if port_value:
        try:
            port = int(port_value)
        except ValueError as exc:
            raise NodeConfigError(f"invalid rpcport {port_value!r} in {path}") from exc
    elif chain in DEFAULT_RPC_PORTS:
        port = DEFAULT_RPC_PORTS[chain]
    else:
        raise NodeConfigError(f"rpcport missing from {path} and no default for {chain}")

    logger.debug("Loaded node config for %s from %s (port %d)", chain, path, port)
    return NodeConfig(
        chain=chain,
        rpc_user=user,
        rpc_password=password,
        rpc_host=values.get("rpchost") or DEFAULT_RPC_HOST,
        rpc_port=port,
    )
