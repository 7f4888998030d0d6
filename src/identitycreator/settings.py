"""
identitycreator - Settings

Settings are loaded from environment variables with the IDENTITYCREATOR_
prefix, or from a .env file in the working directory.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Registration configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="IDENTITYCREATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Network selection
    TESTNET: bool = False
    MAINNET_CHAIN: str = "VRSC"
    TESTNET_CHAIN: str = "vrsctest"

    # RPC connection - empty values fall back to the node's <CHAIN>.conf
    RPC_URL: str = ""
    RPC_USER: str = ""
    RPC_PASSWORD: str = ""
    RPC_TIMEOUT: float = 30.0

    # Base directory holding one data directory per chain (default ~/.komodo)
    NODE_DATA_DIR: str = ""

    # Confirmation polling
    CONFIRMATION_POLL_INTERVAL: float = 3.0
    VISIBILITY_RETRY_INTERVAL: float = 0.1
    VISIBILITY_MAX_RETRIES: int = 20000
    TX_LOOKUP: Literal["wallet", "raw"] = "wallet"

    # Logging level
    LOG_LEVEL: str = "INFO"

    def chain_name(self, testnet: bool | None = None) -> str:
        """Return the chain identifier for mainnet or testnet."""
        if testnet is None:
            testnet = self.TESTNET
        return self.TESTNET_CHAIN if testnet else self.MAINNET_CHAIN


settings = Settings()
