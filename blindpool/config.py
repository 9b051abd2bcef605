"""Configuration management for the BlindPool client."""

from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# The .env file lives next to the package directory
PROJECT_DIR = Path(__file__).parent.parent
ENV_FILE_PATH = PROJECT_DIR / ".env"

# Nested settings read os.environ only, so load the file into it as well
load_dotenv(ENV_FILE_PATH)

SEPOLIA_CCA_FACTORY = "0xcca1101C61cF5cb44C968947985300DF945C3565"
# Block just before the first auction was created on Sepolia
SEPOLIA_FACTORY_DEPLOY_BLOCK = 10_184_000

ANVIL_RPC_URL = "http://127.0.0.1:8545"
SEPOLIA_RPC_URL = "https://1rpc.io/sepolia"


class NetworkConfig(BaseSettings):
    """
    Network selection.

    A single switch picks the local Anvil node or Sepolia; factory address,
    scan start block, RPC endpoint and chain id follow from it. The optional
    overrides exist for local deployments whose addresses differ.
    """

    model_config = SettingsConfigDict(env_prefix="BLINDPOOL_", populate_by_name=True, extra="ignore")

    network: Literal["anvil", "sepolia"] = Field(default="sepolia", description="Target network")
    factory_address_override: Optional[str] = Field(
        default=None, alias="BLINDPOOL_FACTORY_ADDRESS", description="CCA factory address"
    )
    deploy_block_override: Optional[int] = Field(
        default=None, alias="BLINDPOOL_DEPLOY_BLOCK", description="First block of factory scans"
    )
    rpc_url_override: Optional[str] = Field(
        default=None, alias="BLINDPOOL_RPC_URL", description="RPC endpoint URL"
    )
    blind_pool_address: Optional[str] = Field(default=None, description="Blind pool contract address")

    @property
    def is_anvil(self) -> bool:
        return self.network == "anvil"

    @property
    def chain_id(self) -> int:
        return 31337 if self.is_anvil else 11155111

    @property
    def network_name(self) -> str:
        return "Anvil" if self.is_anvil else "Sepolia"

    @property
    def rpc_url(self) -> str:
        if self.rpc_url_override:
            return self.rpc_url_override
        return ANVIL_RPC_URL if self.is_anvil else SEPOLIA_RPC_URL

    @property
    def factory_address(self) -> str:
        return self.factory_address_override or SEPOLIA_CCA_FACTORY

    @property
    def deploy_block(self) -> int:
        if self.deploy_block_override is not None:
            return self.deploy_block_override
        return 0 if self.is_anvil else SEPOLIA_FACTORY_DEPLOY_BLOCK

    @property
    def block_explorer_url(self) -> Optional[str]:
        return None if self.is_anvil else "https://sepolia.etherscan.io"

    def address_url(self, address: str) -> Optional[str]:
        """Explorer link for an address, if the network has an explorer."""
        if not self.block_explorer_url:
            return None
        return f"{self.block_explorer_url}/address/{address}"


class BlindPoolConfig(BaseSettings):
    """Main configuration class for the BlindPool client."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        env_prefix="BLINDPOOL_",
        case_sensitive=False,
        extra="ignore"
    )

    chain: NetworkConfig = Field(default_factory=NetworkConfig)

    # Signer used by the write interface
    private_key: Optional[str] = Field(default=None, description="Private key for transactions")
    gas_limit: int = Field(default=3000000, description="Default gas limit")
    receipt_timeout: int = Field(default=120, description="Seconds to wait for a receipt")

    # Log scanning
    factory_chunk_size: int = Field(default=1000, description="Block width of factory log queries")
    bid_chunk_size: int = Field(default=9000, description="Block width of bid log queries")
    chunk_retries: int = Field(default=2, description="Retries per failed log chunk")

    # Repository
    refresh_interval: float = Field(default=12.0, description="Seconds between background refreshes")
    latest_bids_limit: int = Field(default=10, description="Rows shown in latest bids")

    # Confidential bidding
    encryption_service_url: Optional[str] = Field(
        default=None, description="Encryption sidecar endpoint for blind bids"
    )

    @classmethod
    def from_env(cls) -> "BlindPoolConfig":
        """Create configuration from environment variables."""
        return cls()

    def is_anvil(self) -> bool:
        """Check if targeting the local test network."""
        return self.chain.is_anvil

    def display(self) -> str:
        """Render current configuration (hiding sensitive data)."""
        lines = [
            "Configuration:",
            f"  Network: {self.chain.network_name} (chain {self.chain.chain_id})",
            f"  RPC URL: {self.chain.rpc_url}",
            f"  Factory: {self.chain.factory_address}",
            f"  Deploy block: {self.chain.deploy_block}",
            f"  Blind pool: {self.chain.blind_pool_address or '✗ Not set'}",
            f"  Private Key: {'✓ Set' if self.private_key else '✗ Not set'}",
            f"  Refresh interval: {self.refresh_interval}s",
            f"  Encryption service: {self.encryption_service_url or '✗ Not set'}",
        ]
        return "\n".join(lines)


# Global configuration instance
config = BlindPoolConfig.from_env()
